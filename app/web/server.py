"""
Flask HTTP surface for ShortsProcessor.
Thin glue: parse JSON, call the pipeline / transcript service / store,
map JobError subclasses to status codes.
"""

import base64
import logging

from flask import Flask, jsonify, request, send_file, url_for
from werkzeug.exceptions import HTTPException

from app.core.constants import SERVICE_NAME, OUTPUT_MIMETYPE
from app.core.config import AppConfig
from app.core.models import SegmentRequest, SegmentResult
from app.core.error_codes import JobError, ValidationError, NotFoundError
from app.core.pipeline import SegmentPipeline
from app.core.artifact_store import ArtifactStore
from app.core.transcript import TranscriptService
from app.core.diagnostics import get_diagnostics
from app.core.url_parse import is_youtube_url

logger = logging.getLogger(__name__)


def log_request_context(tag: str):
    logger.info(
        "[%s] %s %s content_length=%s, remote_addr=%s",
        tag,
        request.method,
        request.path,
        request.content_length,
        request.remote_addr,
    )


def error_response(error: JobError, summary: str):
    """JSON body + status for a JobError."""
    if isinstance(error, ValidationError):
        return jsonify({'error': error.message, 'code': error.code}), 400
    if isinstance(error, NotFoundError):
        return jsonify({'error': error.message, 'code': error.code}), 404
    return jsonify({
        'error': summary,
        'code': error.code,
        'stage': error.stage,
        'details': error.message,
        'stderr': error.detail or 'No stderr available',
        'retryable': error.retryable,
    }), 500


def create_app(config: AppConfig, pipeline: SegmentPipeline,
               store: ArtifactStore | None = None,
               transcripts: TranscriptService | None = None,
               cookies_path=None) -> Flask:
    """Application factory; collaborators are built by main.build_app()."""
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = 1 * 1024 * 1024

    def segment_payload(result: SegmentResult) -> dict:
        body = {
            'success': True,
            'fileName': result.file_name,
            'size': result.size,
            'segment': {'start': result.start, 'duration': result.duration},
        }
        if result.video_bytes is not None:
            body['video'] = base64.b64encode(result.video_bytes).decode('ascii')
        else:
            path = url_for('download_artifact', artifact_id=result.artifact_id)
            body['downloadUrl'] = f"{config.get('public_base_url')}{path}"
            body['expiresIn'] = result.expires_in
        return body

    @app.route('/health')
    def health():
        return jsonify({'status': 'ok', 'service': SERVICE_NAME})

    @app.route('/diagnostics')
    def diagnostics():
        info = get_diagnostics(cookies_path)
        info['config'] = config.as_dict()
        if store is not None:
            info['stored_artifacts'] = len(store)
        return jsonify(info)

    @app.route('/process-segment', methods=['POST'])
    def process_segment():
        log_request_context("PROCESS_SEGMENT")
        try:
            segment = SegmentRequest.from_payload(request.get_json(silent=True))
        except ValidationError as e:
            logger.warning("[PROCESS_SEGMENT] Rejected: %s", e.message)
            return error_response(e, 'Invalid request')

        logger.info("[PROCESS_SEGMENT] Segment %ss for %ss of %s",
                    segment.start_time, segment.duration, segment.video_url)
        if not is_youtube_url(segment.video_url):
            logger.info("[PROCESS_SEGMENT] Non-YouTube source, handing it to yt-dlp as is: %s",
                        segment.video_url)
        try:
            result = pipeline.run(segment, delivery=config.delivery_mode)
        except JobError as e:
            return error_response(e, 'Processing failed')

        return jsonify(segment_payload(result))

    @app.route('/get-transcript', methods=['POST'])
    def get_transcript():
        log_request_context("GET_TRANSCRIPT")
        if transcripts is None:
            return jsonify({'error': 'Transcripts are not enabled'}), 404

        payload = request.get_json(silent=True) or {}
        video_url = payload.get('videoUrl') if isinstance(payload, dict) else None
        if not video_url:
            return jsonify({'error': 'videoUrl required'}), 400

        try:
            result = transcripts.get_transcript(video_url)
        except JobError as e:
            return error_response(e, 'Transcript extraction failed')

        return jsonify({
            'success': True,
            'videoId': result.video_id,
            'title': result.title,
            'duration': result.duration,
            'transcript': result.transcript,
            'segments': len(result.segments),
        })

    @app.route('/download/<artifact_id>')
    def download_artifact(artifact_id):
        if store is None:
            return jsonify({'error': 'File expired or not found'}), 404
        try:
            artifact = store.get(artifact_id)
            handle = store.open(artifact_id)
        except NotFoundError as e:
            return error_response(e, 'File expired or not found')

        return send_file(
            handle,
            mimetype=OUTPUT_MIMETYPE,
            as_attachment=True,
            download_name=artifact.path.name,
        )

    @app.errorhandler(Exception)
    def unhandled(e):
        if isinstance(e, HTTPException):
            return jsonify({'error': e.description}), e.code
        logger.exception("[REQUEST] Unhandled error")
        return jsonify({'error': 'Internal server error'}), 500

    return app
