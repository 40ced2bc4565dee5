#!/usr/bin/env python3
"""
HTTP tests for the Flask surface, using the test client with the
Fetch and Render stages replaced by file-writing fakes.
"""

import sys
import base64
import tempfile
from pathlib import Path
from unittest import mock

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import unittest

from app.core.constants import ErrorCode, JobStage, SERVICE_NAME, NO_TRANSCRIPT_PLACEHOLDER
from app.core.config import AppConfig
from app.core.models import FetchStrategy, TranscriptResult
from app.core.error_codes import FetchError
from app.core.artifact_store import ArtifactStore
from app.core.pipeline import SegmentPipeline
from app.core.transcript import TranscriptService
from app.web.server import create_app

VIDEO_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


class FakeClock:

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class ServerTestCase(unittest.TestCase):

    delivery_mode = "inline"

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.work = Path(self.tmp.name)
        self.config = AppConfig(env={
            'WORK_DIR': str(self.work),
            'DELIVERY_MODE': self.delivery_mode,
            'PUBLIC_BASE_URL': 'https://clips.example.com/',
        })
        self.fetch_calls = []
        self.clock = FakeClock()
        self.store = None
        if self.delivery_mode == "store":
            self.store = ArtifactStore(ttl_sec=600, clock=self.clock)
        self.pipeline = SegmentPipeline(
            FetchStrategy(), store=self.store, work_dir=self.work,
            fetcher=self._fetch, renderer=self._render,
        )
        self.transcripts = TranscriptService(FetchStrategy(), work_dir=self.work)
        app = create_app(self.config, self.pipeline, store=self.store,
                         transcripts=self.transcripts)
        app.testing = True
        self.client = app.test_client()

    def tearDown(self):
        if self.store is not None:
            self.store.close()
        self.tmp.cleanup()

    def _fetch(self, source, start, duration, path, strategy, **kwargs):
        self.fetch_calls.append((source, start, duration))
        path.write_bytes(b"raw")
        return path

    def _render(self, input_path, output_path, caption, cta, **kwargs):
        output_path.write_bytes(b"vertical-video")
        return output_path


class TestInlineServer(ServerTestCase):

    def test_health(self):
        resp = self.client.get('/health')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json(), {'status': 'ok', 'service': SERVICE_NAME})

    def test_process_segment_inline(self):
        resp = self.client.post('/process-segment', json={
            'videoUrl': VIDEO_URL, 'startTime': 30, 'duration': 60,
            'caption': "Don't miss", 'cta': 'Subscribe',
        })
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertTrue(body['success'])
        self.assertEqual(body['segment'], {'start': 30, 'duration': 60})
        self.assertEqual(body['size'], len(b"vertical-video"))
        self.assertEqual(base64.b64decode(body['video']), b"vertical-video")
        self.assertTrue(body['fileName'].endswith('_processed.mp4'))
        self.assertNotIn('downloadUrl', body)
        self.assertEqual(list(self.work.iterdir()), [])

    def test_missing_start_time_rejected_before_fetch(self):
        resp = self.client.post('/process-segment', json={'videoUrl': VIDEO_URL})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error'], 'videoUrl and startTime required')
        self.assertEqual(self.fetch_calls, [])
        self.assertEqual(list(self.work.iterdir()), [])

    def test_non_finite_start_time_rejected_before_fetch(self):
        resp = self.client.post('/process-segment', content_type='application/json',
                                data=f'{{"videoUrl": "{VIDEO_URL}", "startTime": NaN}}')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['code'], ErrorCode.VALIDATION)
        self.assertEqual(self.fetch_calls, [])

    def test_non_youtube_source_logged(self):
        with self.assertLogs('app.web.server', level='INFO') as logs:
            resp = self.client.post('/process-segment',
                                    json={'videoUrl': 'https://vimeo.com/12345', 'startTime': 0})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.fetch_calls[0][0], 'https://vimeo.com/12345')
        self.assertTrue(any('Non-YouTube source' in line for line in logs.output))

    def test_non_json_body_rejected(self):
        resp = self.client.post('/process-segment', data='not json',
                                content_type='text/plain')
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['code'], ErrorCode.VALIDATION)

    def test_fetch_failure_payload(self):
        def failing_fetch(source, start, duration, path, strategy, **kwargs):
            raise FetchError(FetchError.Reason.TOOL_FAILURE, "yt-dlp download failed (rc=1)",
                             "ERROR: Sign in to confirm you're not a bot")
        self.pipeline._fetch = failing_fetch

        resp = self.client.post('/process-segment', json={'videoUrl': VIDEO_URL, 'startTime': 0})
        self.assertEqual(resp.status_code, 500)
        body = resp.get_json()
        self.assertEqual(body['error'], 'Processing failed')
        self.assertEqual(body['code'], ErrorCode.FETCH_TOOL_FAILURE)
        self.assertEqual(body['stage'], JobStage.FETCHING)
        self.assertIn('Sign in', body['stderr'])
        self.assertTrue(body['retryable'])

    def test_download_without_store(self):
        self.assertEqual(self.client.get('/download/123_abc').status_code, 404)

    def test_transcript_requires_url(self):
        resp = self.client.post('/get-transcript', json={})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['error'], 'videoUrl required')

    def test_transcript_rejects_non_youtube(self):
        resp = self.client.post('/get-transcript', json={'videoUrl': 'https://example.com/v'})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.get_json()['code'], ErrorCode.INVALID_URL)

    def test_transcript(self):
        result = TranscriptResult(video_id='dQw4w9WgXcQ', title='Test', duration=212.0,
                                  transcript=NO_TRANSCRIPT_PLACEHOLDER)
        with mock.patch.object(self.transcripts, 'get_transcript', return_value=result):
            resp = self.client.post('/get-transcript', json={'videoUrl': VIDEO_URL})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json(), {
            'success': True,
            'videoId': 'dQw4w9WgXcQ',
            'title': 'Test',
            'duration': 212.0,
            'transcript': NO_TRANSCRIPT_PLACEHOLDER,
            'segments': 0,
        })

    def test_unknown_route(self):
        self.assertEqual(self.client.get('/nope').status_code, 404)


class TestStoreServer(ServerTestCase):

    delivery_mode = "store"

    def _process(self):
        resp = self.client.post('/process-segment', json={'videoUrl': VIDEO_URL, 'startTime': 5})
        self.assertEqual(resp.status_code, 200)
        return resp.get_json()

    def test_store_delivery_and_download(self):
        body = self._process()
        self.assertNotIn('video', body)
        self.assertEqual(body['expiresIn'], 600)
        self.assertTrue(body['downloadUrl'].startswith('https://clips.example.com/download/'))
        self.assertEqual(len(list(self.work.iterdir())), 1)

        path = body['downloadUrl'][len('https://clips.example.com'):]
        resp = self.client.get(path)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.mimetype, 'video/mp4')
        self.assertEqual(resp.data, b"vertical-video")
        self.assertIn('attachment', resp.headers['Content-Disposition'])
        resp.close()

    def test_download_after_expiry(self):
        body = self._process()
        path = body['downloadUrl'][len('https://clips.example.com'):]
        self.clock.now += 601

        resp = self.client.get(path)
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.get_json()['error'], 'File expired or not found')
        self.assertEqual(list(self.work.iterdir()), [])

    def test_download_unknown_id(self):
        resp = self.client.get('/download/0_deadbeef00')
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.get_json()['code'], ErrorCode.NOT_FOUND)


class TestGunicornConfig(unittest.TestCase):

    def test_single_private_worker(self):
        import gunicorn_config
        self.assertEqual(gunicorn_config.workers, 1)
        self.assertEqual(gunicorn_config.worker_class, "gthread")
        self.assertEqual(gunicorn_config.umask, 0o077)


if __name__ == "__main__":
    unittest.main()
