"""
Tests for read/write byte streams.

Uses an in-memory blob store and temporary files; no network access.

Run with: python tests/test_streams.py
"""

import os
import shutil
import sys
import tempfile
import threading
import unittest
from unittest.mock import MagicMock, patch

TEST_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(TEST_DIR)
sys.path.insert(0, PROJECT_ROOT)
sys.path.insert(0, TEST_DIR)

from fake_blob_store import FakeBlobStore
from stream_utils.exceptions import InvalidFormat, TransportError
from stream_utils.interfaces import ObjectDestination
from stream_utils.streams import FATAL_EXIT_CODE, PassThrough, StreamFactory

PAYLOAD = b'[{"id": 1, "amount": 10.5}, {"id": 2, "amount": 7}]'


class TestOpenRead(unittest.TestCase):

    def setUp(self):
        self.store = FakeBlobStore({('bucket', 'key.json'): PAYLOAD})
        self.factory = StreamFactory(self.store, read_chunk_size=8)
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_reads_local_file(self):
        path = os.path.join(self.tmpdir, 'data.json')
        with open(path, 'wb') as f:
            f.write(PAYLOAD)
        with self.factory.open_read(f'file://{path}') as stream:
            self.assertEqual(stream.read(), PAYLOAD)

    def test_reads_object_in_order_exactly_once(self):
        stream = self.factory.open_read('s3://bucket/key.json')
        chunks = list(stream.iter_chunks())
        self.assertGreater(len(chunks), 1)
        self.assertEqual(b''.join(chunks), PAYLOAD)
        self.assertEqual(self.store.gets, [('bucket', 'key.json', None)])

    def test_range_request_is_inclusive(self):
        stream = self.factory.open_read('s3://bucket/key.json?offset=1&length=4')
        self.assertEqual(stream.read(), PAYLOAD[1:6])
        self.assertEqual(self.store.gets, [('bucket', 'key.json', 'bytes=1-5')])

    def test_open_does_no_io(self):
        self.factory.open_read('s3://bucket/key.json')
        self.assertEqual(self.store.gets, [])

    def test_missing_file_surfaces_on_read(self):
        stream = self.factory.open_read(f'file://{self.tmpdir}/missing.json')
        errors = []
        stream.on_error(errors.append)
        with self.assertRaises(TransportError) as ctx:
            stream.read()
        self.assertIsInstance(ctx.exception.__cause__, FileNotFoundError)
        self.assertEqual(errors, [ctx.exception])
        self.assertIs(stream.error, ctx.exception)

    def test_backend_error_surfaces_on_read(self):
        self.store.get_error = RuntimeError('access denied')
        stream = self.factory.open_read('s3://bucket/key.json')
        with self.assertRaises(TransportError) as ctx:
            stream.read()
        self.assertEqual(ctx.exception.locator, 's3://bucket/key.json')

    def test_read_after_close_does_not_refetch(self):
        stream = self.factory.open_read('s3://bucket/key.json')
        self.assertEqual(stream.read(), PAYLOAD)
        stream.close()
        with self.assertRaises(ValueError):
            stream.read()
        with self.assertRaises(ValueError):
            stream.readinto(bytearray(10))
        self.assertEqual(len(self.store.gets), 1)

    def test_malformed_locator_fails_synchronously(self):
        with self.assertRaises(InvalidFormat):
            self.factory.open_read('s3://bucket')
        self.assertEqual(self.store.gets, [])


class TestPassThrough(unittest.TestCase):

    def test_read_blocks_until_size_or_close(self):
        buffer = PassThrough(high_water_mark=4)
        received = []

        def reader():
            received.append(buffer.read(10))
            received.append(buffer.read(10))

        thread = threading.Thread(target=reader)
        thread.start()
        for piece in (b'abc', b'def', b'ghi', b'jkl'):
            buffer.write(piece)
        buffer.close()
        thread.join(timeout=5)
        self.assertEqual(received, [b'abcdefghij', b'kl'])

    def test_abort_fails_blocked_writer(self):
        buffer = PassThrough(high_water_mark=2)
        buffer.write(b'xx')
        error = TransportError('gone')
        timer = threading.Timer(0.05, buffer.abort, args=(error,))
        timer.start()
        with self.assertRaises(TransportError):
            buffer.write(b'yy')
        timer.join()


class TestOpenWrite(unittest.TestCase):

    def setUp(self):
        self.store = FakeBlobStore()
        self.factory = StreamFactory(self.store, write_high_water_mark=16)

    def test_uploads_written_bytes(self):
        stream = self.factory.open_write('s3://bucket/out.txt')
        stream.write(b'hello ')
        stream.write(b'world')
        result = stream.wait(timeout=5)
        self.assertEqual(self.store.objects[('bucket', 'out.txt')], b'hello world')
        self.assertEqual(result.bucket, 'bucket')
        self.assertEqual(result.key, 'out.txt')
        self.assertEqual(result.locator, 's3://bucket/out.txt')
        self.assertEqual(stream.src, 's3://bucket/out.txt')
        self.assertEqual(result.as_reference(), {'$src': 's3://bucket/out.txt'})
        self.assertEqual(self.store.puts, [('bucket', 'out.txt', 'application/json')])

    def test_pipe_from_read_stream(self):
        self.store.objects[('bucket', 'in.json')] = PAYLOAD * 20
        done = threading.Event()
        results = []

        def on_complete(err, data):
            results.append((err, data))
            done.set()

        source = self.factory.open_read('s3://bucket/in.json')
        sink = self.factory.open_write('s3://bucket/in.json.out.txt', on_complete)
        shutil.copyfileobj(source, sink)
        sink.close()
        self.assertTrue(done.wait(timeout=5))
        err, data = results[0]
        self.assertIsNone(err)
        self.assertEqual(data.key, 'in.json.out.txt')
        self.assertEqual(self.store.objects[('bucket', 'in.json.out.txt')], PAYLOAD * 20)

    def test_writing_flag_flips_after_put_settles(self):
        self.store.put_gate = threading.Event()
        seen = []
        stream = self.factory.open_write({'bucketName': 'bucket', 'key': 'k'},
                                         lambda err, data: seen.append(stream.writing))
        stream.write(b'x')
        stream.close()
        self.assertTrue(stream.writing)
        self.assertIsNone(stream.src)
        self.store.put_gate.set()
        stream.wait(timeout=5)
        self.assertFalse(stream.writing)
        self.assertEqual(seen, [False])

    def test_content_type_from_destination(self):
        stream = self.factory.open_write({'bucketName': 'bucket', 'key': 'a.txt', 'contentType': 'text/plain'})
        stream.wait(timeout=5)
        self.assertEqual(self.store.puts, [('bucket', 'a.txt', 'text/plain')])

    def test_concurrent_prefix_writes_get_distinct_keys(self):
        destination = {'bucketName': 'bucket', 'keyPrefix': 'batch/'}
        streams = [self.factory.open_write(destination) for _ in range(5)]
        for i, stream in enumerate(streams):
            stream.write(str(i).encode())
        for stream in streams:
            stream.wait(timeout=5)
        keys = {stream.key for stream in streams}
        self.assertEqual(len(keys), 5)
        self.assertTrue(all(key.startswith('batch/') for key in keys))
        self.assertEqual(len(self.store.objects), 5)

    def test_key_resolved_once_at_open(self):
        stream = self.factory.open_write({'bucketName': 'bucket', 'keyPrefix': 'p/'})
        key = stream.key
        result = stream.wait(timeout=5)
        self.assertEqual(result.key, key)

    def test_failure_goes_to_callback(self):
        self.store.put_error = RuntimeError('denied')
        done = threading.Event()
        results = []

        def on_complete(err, data):
            results.append((err, data))
            done.set()

        stream = self.factory.open_write('s3://bucket/k', on_complete)
        self.assertTrue(done.wait(timeout=5))
        err, data = results[0]
        self.assertIsInstance(err, TransportError)
        self.assertIsNone(data)
        self.assertFalse(stream.writing)

    def test_failure_without_callback_uses_stream_error_channel(self):
        self.store.put_gate = threading.Event()
        self.store.put_error = RuntimeError('denied')
        errors = []
        stream = self.factory.open_write('s3://bucket/k')
        stream.on_error(errors.append)
        self.store.put_gate.set()
        with self.assertRaises(TransportError):
            stream.wait(timeout=5)
        self.assertEqual(errors, [stream.error])
        self.assertFalse(stream.writing)
        self.assertIsNone(stream.src)

    def test_error_subscribers_called_once(self):
        self.store.put_gate = threading.Event()
        self.store.put_error = RuntimeError('denied')
        early, late = [], []
        stream = self.factory.open_write('s3://bucket/k')
        stream.on_error(early.append)
        self.store.put_gate.set()
        with self.assertRaises(TransportError):
            stream.wait(timeout=5)
        stream.on_error(late.append)
        self.assertEqual(early, [stream.error])
        self.assertEqual(late, [stream.error])

    def test_invalid_destination_instance_rejected(self):
        with self.assertRaises(InvalidFormat):
            self.factory.open_write(ObjectDestination(bucket='bucket'))
        with self.assertRaises(InvalidFormat):
            self.factory.open_write(ObjectDestination(bucket='bucket', key='k', key_prefix='p/'))
        self.assertEqual(self.store.puts, [])

    def test_write_after_failure_raises(self):
        self.store.put_error = RuntimeError('denied')
        failed = threading.Event()
        stream = self.factory.open_write('s3://bucket/k')
        stream.on_error(lambda err: failed.set())
        self.assertTrue(failed.wait(timeout=5))
        with self.assertRaises(TransportError):
            stream.write(b'late')
        stream.close()

    def test_throw_error_terminates_process(self):
        self.store.put_error = RuntimeError('denied')
        with patch('stream_utils.streams.os._exit') as mock_exit:
            stream = self.factory.open_write('s3://bucket/k', throw_error=True)
            with self.assertRaises(TransportError):
                stream.wait(timeout=5)
        mock_exit.assert_called_once_with(FATAL_EXIT_CODE)

    def test_throw_error_not_triggered_on_success(self):
        with patch('stream_utils.streams.os._exit') as mock_exit:
            stream = self.factory.open_write('s3://bucket/k', throw_error=True)
            stream.write(b'ok')
            stream.wait(timeout=5)
        mock_exit.assert_not_called()

    def test_invalid_destination_fails_before_upload(self):
        with self.assertRaises(InvalidFormat):
            self.factory.open_write('file:///tmp/out.json')
        self.assertEqual(self.store.puts, [])

    def test_on_complete_must_be_callable(self):
        with self.assertRaises(TypeError):
            self.factory.open_write('s3://bucket/k', on_complete='nope')

    def test_context_manager_closes_stream(self):
        blob_store = MagicMock()
        blob_store.put.side_effect = lambda bucket, key, content_type, body: {'read': body.read()}
        factory = StreamFactory(blob_store)
        with factory.open_write('s3://bucket/k') as stream:
            stream.write(b'abc')
        result = stream.wait(timeout=5)
        self.assertEqual(result.raw, {'read': b'abc'})


if __name__ == '__main__':
    unittest.main()
