"""Pytest fixtures for b2py tests."""
import base64
import hashlib
import os
from collections import defaultdict
from urllib.parse import unquote

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from b2py.core.api import APIConfig, UploadLimits
from b2py.core.session import SessionData

KEY_ID = 'key-id-123'
KEY = 'secret-key'


def auth_payload(api_url='https://api001.example.com', token='token-1', download_url=None,
                 recommended=100_000_000, minimum=5_000_000):
    """Body of a successful b2_authorize_account response."""
    return {
        'accountId': 'account-1',
        'authorizationToken': token,
        'apiInfo': {
            'storageApi': {
                'apiUrl': api_url,
                'downloadUrl': download_url or api_url,
                'recommendedPartSize': recommended,
                'absoluteMinimumPartSize': minimum,
                's3ApiUrl': 'https://s3.example.com',
                'capabilities': ['listBuckets', 'writeFiles', 'readFiles'],
            }
        },
    }


@pytest.fixture
def session_data():
    """An authorized session."""
    return SessionData(
        key_id=KEY_ID,
        key=KEY,
        api_url='https://api001.example.com',
        download_url='https://f001.example.com',
        auth_token='token-1',
        account_id='account-1',
        buckets={'photos': 'bucket-photos'},
    )


@pytest.fixture
def temp_file(tmp_path):
    """A small file with known content."""
    path = tmp_path / 'notes.txt'
    path.write_bytes(b'hello world')
    return path


@pytest.fixture
def random_file(tmp_path):
    """Factory for files of random bytes."""
    def make(size, name='data.bin'):
        path = tmp_path / name
        path.write_bytes(os.urandom(size))
        return path
    return make


class FakeB2:
    """
    In-process imitation of the B2 endpoints b2py uses.

    Tokens can be made to expire on demand:
    `expire[api_name] = n` rejects the next n calls of that endpoint
    with expired_auth_token, `expire_uploads = n` does the same for
    upload and upload-part URLs.
    """

    def __init__(self):
        self.token_count = 0
        self.token = ''
        self.upload_tokens = set()
        self.expire = defaultdict(int)
        self.expire_uploads = 0
        self.calls = defaultdict(int)
        self.buckets = {'photos': 'bucket-photos', 'backups': 'bucket-backups'}
        self.files = {}
        self.large_files = {}
        self.finished = {}
        self.recommended_part_size = 100_000_000
        self.absolute_minimum_part_size = 5_000_000

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get('/b2api/v3/b2_authorize_account', self.authorize)
        app.router.add_get('/b2api/v3/b2_list_buckets', self.list_buckets)
        app.router.add_get('/b2api/v3/b2_list_file_names', self.list_file_names)
        app.router.add_get('/b2api/v3/b2_get_upload_url', self.get_upload_url)
        app.router.add_get('/b2api/v3/b2_get_upload_part_url', self.get_upload_part_url)
        app.router.add_post('/b2api/v3/b2_start_large_file', self.start_large_file)
        app.router.add_post('/b2api/v3/b2_finish_large_file', self.finish_large_file)
        app.router.add_post('/b2api/v3/b2_cancel_large_file', self.cancel_large_file)
        app.router.add_post('/upload/{bucket_id}', self.upload_file)
        app.router.add_post('/upload_part/{file_id}', self.upload_part)
        app.router.add_get('/file/{bucket}/{name:.+}', self.download)
        return app

    @staticmethod
    def error(status, code, message=''):
        return web.json_response({'status': status, 'code': code, 'message': message}, status=status)

    def check_token(self, request, api_name):
        self.calls[api_name] += 1
        if self.expire[api_name] > 0:
            self.expire[api_name] -= 1
            return self.error(401, 'expired_auth_token', 'Authorization token has expired')
        if request.headers.get('Authorization') != self.token:
            return self.error(401, 'bad_auth_token', 'Invalid authorization token')
        return None

    def check_upload_token(self, request, api_name):
        self.calls[api_name] += 1
        token = request.headers.get('Authorization')
        if self.expire_uploads > 0:
            self.expire_uploads -= 1
            self.upload_tokens.discard(token)
            return self.error(401, 'expired_auth_token', 'Upload token has expired')
        if token not in self.upload_tokens:
            return self.error(401, 'bad_auth_token', 'Invalid upload token')
        return None

    def check_sha1(self, request, data):
        if request.headers.get('X-Bz-Content-Sha1') != hashlib.sha1(data).hexdigest():
            return self.error(400, 'bad_request', 'Sha1 did not match data received')
        if int(request.headers['Content-Length']) != len(data):
            return self.error(400, 'bad_request', 'Content-Length mismatch')
        return None

    async def authorize(self, request):
        self.calls['b2_authorize_account'] += 1
        expected = 'Basic ' + base64.b64encode(f'{KEY_ID}:{KEY}'.encode()).decode()
        if request.headers.get('Authorization') != expected:
            return self.error(401, 'unauthorized', 'Invalid application key')

        self.token_count += 1
        self.token = f'token-{self.token_count}'
        base = str(request.url.origin())
        return web.json_response(auth_payload(
            api_url=base,
            token=self.token,
            recommended=self.recommended_part_size,
            minimum=self.absolute_minimum_part_size,
        ))

    async def list_buckets(self, request):
        rejected = self.check_token(request, 'b2_list_buckets')
        if rejected:
            return rejected
        return web.json_response({'buckets': [
            {'bucketId': bid, 'bucketName': name, 'bucketType': 'allPrivate', 'accountId': 'account-1'}
            for name, bid in sorted(self.buckets.items())
        ]})

    async def list_file_names(self, request):
        rejected = self.check_token(request, 'b2_list_file_names')
        if rejected:
            return rejected

        bucket_id = request.query['bucketId']
        prefix = request.query.get('prefix', '')
        start = request.query.get('startFileName', '')
        limit = int(request.query.get('maxFileCount', 1000))

        names = sorted(
            name for (bid, name) in self.files
            if bid == bucket_id and name.startswith(prefix) and name >= start
        )
        page, rest = names[:limit], names[limit:]
        return web.json_response({
            'files': [self.file_record(bucket_id, name) for name in page],
            'nextFileName': rest[0] if rest else None,
        })

    def file_record(self, bucket_id, name):
        stored = self.files[(bucket_id, name)]
        return {
            'fileId': stored['file_id'],
            'fileName': name,
            'bucketId': bucket_id,
            'accountId': 'account-1',
            'contentLength': len(stored['data']),
            'contentSha1': stored['sha1'],
            'contentType': stored['content_type'],
            'action': 'upload',
            'fileInfo': {},
            'uploadTimestamp': 1700000000000,
        }

    async def get_upload_url(self, request):
        rejected = self.check_token(request, 'b2_get_upload_url')
        if rejected:
            return rejected
        bucket_id = request.query['bucketId']
        token = f'upload-{len(self.upload_tokens)}-{self.calls["b2_get_upload_url"]}'
        self.upload_tokens.add(token)
        return web.json_response({
            'bucketId': bucket_id,
            'uploadUrl': f'{request.url.origin()}/upload/{bucket_id}',
            'authorizationToken': token,
        })

    async def upload_file(self, request):
        rejected = self.check_upload_token(request, 'b2_upload_file')
        if rejected:
            return rejected

        data = await request.read()
        rejected = self.check_sha1(request, data)
        if rejected:
            return rejected

        bucket_id = request.match_info['bucket_id']
        name = unquote(request.headers['X-Bz-File-Name'])
        self.files[(bucket_id, name)] = {
            'file_id': f'file-{len(self.files) + 1}',
            'data': data,
            'sha1': request.headers['X-Bz-Content-Sha1'],
            'content_type': request.headers['Content-Type'],
        }
        return web.json_response(self.file_record(bucket_id, name))

    async def start_large_file(self, request):
        rejected = self.check_token(request, 'b2_start_large_file')
        if rejected:
            return rejected
        body = await request.json()
        file_id = f'large-{len(self.large_files) + 1}'
        self.large_files[file_id] = {
            'bucket_id': body['bucketId'],
            'name': body['fileName'],
            'content_type': body['contentType'],
            'parts': {},
        }
        return web.json_response({
            'fileId': file_id,
            'fileName': body['fileName'],
            'bucketId': body['bucketId'],
            'contentType': body['contentType'],
            'action': 'start',
        })

    async def get_upload_part_url(self, request):
        rejected = self.check_token(request, 'b2_get_upload_part_url')
        if rejected:
            return rejected
        file_id = request.query['fileId']
        token = f'part-{len(self.upload_tokens)}-{self.calls["b2_get_upload_part_url"]}'
        self.upload_tokens.add(token)
        return web.json_response({
            'fileId': file_id,
            'uploadUrl': f'{request.url.origin()}/upload_part/{file_id}',
            'authorizationToken': token,
        })

    async def upload_part(self, request):
        rejected = self.check_upload_token(request, 'b2_upload_part')
        if rejected:
            return rejected

        data = await request.read()
        rejected = self.check_sha1(request, data)
        if rejected:
            return rejected

        file_id = request.match_info['file_id']
        part_number = int(request.headers['X-Bz-Part-Number'])
        sha1 = request.headers['X-Bz-Content-Sha1']
        self.large_files[file_id]['parts'][part_number] = (data, sha1)
        return web.json_response({
            'fileId': file_id,
            'partNumber': part_number,
            'contentLength': len(data),
            'contentSha1': sha1,
        })

    async def finish_large_file(self, request):
        rejected = self.check_token(request, 'b2_finish_large_file')
        if rejected:
            return rejected

        body = await request.json()
        large = self.large_files.pop(body['fileId'])
        numbers = sorted(large['parts'])
        if numbers != list(range(1, len(numbers) + 1)):
            return self.error(400, 'bad_request', 'Part numbers are not contiguous')
        if body['partSha1Array'] != [large['parts'][n][1] for n in numbers]:
            return self.error(400, 'bad_request', 'Part sha1 array does not match')

        data = b''.join(large['parts'][n][0] for n in numbers)
        self.files[(large['bucket_id'], large['name'])] = {
            'file_id': body['fileId'],
            'data': data,
            'sha1': 'none',
            'content_type': large['content_type'],
        }
        self.finished[body['fileId']] = body['partSha1Array']
        return web.json_response(self.file_record(large['bucket_id'], large['name']))

    async def cancel_large_file(self, request):
        rejected = self.check_token(request, 'b2_cancel_large_file')
        if rejected:
            return rejected
        body = await request.json()
        large = self.large_files.pop(body['fileId'])
        return web.json_response({
            'fileId': body['fileId'],
            'fileName': large['name'],
            'bucketId': large['bucket_id'],
        })

    async def download(self, request):
        rejected = self.check_token(request, 'b2_download_file_by_name')
        if rejected:
            return rejected

        bucket_id = self.buckets.get(request.match_info['bucket'])
        stored = self.files.get((bucket_id, request.match_info['name']))
        if stored is None:
            return self.error(404, 'not_found', 'File not present')
        return web.Response(body=stored['data'], content_type='application/octet-stream')


@pytest.fixture
def fake_b2():
    return FakeB2()


@pytest_asyncio.fixture
async def b2_server(fake_b2):
    """The fake service, listening on a local port."""
    server = TestServer(fake_b2.app())
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def server_config(b2_server):
    """APIConfig pointed at the fake service, with small part limits."""
    return APIConfig(
        auth_url=str(b2_server.make_url('/')),
        limits=UploadLimits(
            large_file_threshold=1024 * 1024,
            absolute_minimum_part_size=1000,
            split_padding=10,
            read_step=4096,
        ),
    )


@pytest.fixture
def make_auth_payload():
    """Builder for b2_authorize_account response bodies."""
    return auth_payload
