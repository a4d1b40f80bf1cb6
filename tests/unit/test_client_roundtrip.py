"""
End-to-end tests of B2Client against an in-process fake B2 service.

Exercises the real aiohttp transport: authorization, token expiry,
single-shot and large-file uploads, listings and downloads.
"""
import hashlib

import pytest

from b2py import B2Client
from b2py.core.exceptions import ApiError, AuthError, AuthExhausted, BucketNotFound, InsufficientData
from b2py.core.session import MemorySession, SessionData, SQLiteSession

from conftest import KEY, KEY_ID


def sha1(data):
    return hashlib.sha1(data).hexdigest()


@pytest.fixture
def client_factory(server_config):
    def make(session=None, key_id=KEY_ID, key=KEY):
        return B2Client(session, config=server_config, key_id=key_id, key=key)
    return make


class TestAuthorization:
    """Authorization and token expiry over HTTP."""

    @pytest.mark.asyncio
    async def test_list_buckets_authorizes_first(self, client_factory, fake_b2):
        async with client_factory() as b2:
            buckets = await b2.list_buckets()

            assert [b.bucket_name for b in buckets] == ['backups', 'photos']
            assert b2.session.auth_token == 'token-1'
            assert b2.session.buckets == {'backups': 'bucket-backups', 'photos': 'bucket-photos'}

        assert fake_b2.calls['b2_authorize_account'] == 1

    @pytest.mark.asyncio
    async def test_wrong_key(self, client_factory):
        async with client_factory(key='wrong') as b2:
            with pytest.raises(AuthError) as exc_info:
                await b2.list_buckets()

        assert exc_info.value.code == 'unauthorized'
        assert exc_info.value.message == 'Invalid application key'
        assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_two_expiries_reauthorize_twice(self, client_factory, fake_b2):
        async with client_factory() as b2:
            await b2.authorize(KEY_ID, KEY)
            fake_b2.expire['b2_list_buckets'] = 2

            buckets = await b2.list_buckets()

            assert len(buckets) == 2
            assert b2.session.auth_token == 'token-3'

        assert fake_b2.calls['b2_authorize_account'] == 3
        assert fake_b2.calls['b2_list_buckets'] == 3

    @pytest.mark.asyncio
    async def test_expiry_budget_exhausted(self, client_factory, fake_b2):
        async with client_factory() as b2:
            await b2.authorize(KEY_ID, KEY)
            fake_b2.expire['b2_list_buckets'] = 5

            with pytest.raises(AuthExhausted):
                await b2.list_buckets()

        assert fake_b2.calls['b2_list_buckets'] == 5
        assert fake_b2.calls['b2_authorize_account'] == 5

    @pytest.mark.asyncio
    async def test_explicit_key_replaces_stored_key(self, client_factory, fake_b2):
        store = MemorySession(SessionData(
            key_id='old-id',
            key='old-key',
            auth_token='old-token',
            api_url='https://stale.example.com',
            buckets={'stale': 'bucket-stale'},
        ))

        async with client_factory(store) as b2:
            buckets = await b2.list_buckets()

        assert len(buckets) == 2
        data = store.load()
        assert (data.key_id, data.key) == (KEY_ID, KEY)
        assert data.auth_token == 'token-1'
        assert 'stale' not in data.buckets
        assert fake_b2.calls['b2_authorize_account'] == 1

    @pytest.mark.asyncio
    async def test_same_key_keeps_stored_token(self, client_factory, fake_b2):
        async with client_factory() as b2:
            await b2.list_buckets()
            stored = b2.session

        store = MemorySession(stored)
        async with client_factory(store) as b2:
            await b2.ls('photos')

        assert store.load().auth_token == 'token-1'
        assert fake_b2.calls['b2_authorize_account'] == 1


class TestSingleShotUpload:
    """b2_upload_file round trips."""

    @pytest.mark.asyncio
    async def test_upload_then_download(self, client_factory, fake_b2, temp_file, tmp_path):
        async with client_factory() as b2:
            result = await b2.upload(temp_file, 'photos', 'docs/notes.txt')
            output = await b2.download('photos', 'docs/notes.txt', tmp_path / 'copy.txt')

        assert result.file_name == 'docs/notes.txt'
        assert result.sha1 == sha1(b'hello world')
        assert not result.is_large_file
        assert output.read_bytes() == b'hello world'
        stored = fake_b2.files[('bucket-photos', 'docs/notes.txt')]
        assert stored['content_type'] == 'text/plain'

    @pytest.mark.asyncio
    async def test_binary_round_trip(self, client_factory, random_file, tmp_path):
        path = random_file(50_000, name='blob.png')

        async with client_factory() as b2:
            result = await b2.upload(path, 'backups')
            data = await b2.read('backups', 'blob.png')

        assert result.file.content_type == 'image/png'
        assert data == path.read_bytes()

    @pytest.mark.asyncio
    async def test_expired_upload_url(self, client_factory, fake_b2, temp_file):
        fake_b2.expire_uploads = 1

        async with client_factory() as b2:
            await b2.upload(temp_file, 'photos')

        assert fake_b2.calls['b2_get_upload_url'] == 2
        assert fake_b2.calls['b2_upload_file'] == 2
        assert fake_b2.files[('bucket-photos', 'notes.txt')]['data'] == b'hello world'

    @pytest.mark.asyncio
    async def test_unknown_bucket(self, client_factory, fake_b2, temp_file):
        async with client_factory() as b2:
            with pytest.raises(BucketNotFound):
                await b2.upload(temp_file, 'missing')

        assert fake_b2.calls['b2_get_upload_url'] == 0

    @pytest.mark.asyncio
    async def test_content_type_override(self, client_factory, fake_b2, temp_file):
        async with client_factory() as b2:
            await b2.upload(temp_file, 'photos', content_type='application/json')

        assert fake_b2.files[('bucket-photos', 'notes.txt')]['content_type'] == 'application/json'


class TestLargeFileUpload:
    """Large-file API round trips."""

    @pytest.fixture(autouse=True)
    def small_parts(self, fake_b2):
        fake_b2.recommended_part_size = 1000
        fake_b2.absolute_minimum_part_size = 1000

    @pytest.mark.asyncio
    async def test_parts_round_trip(self, client_factory, fake_b2, random_file):
        path = random_file(3500)
        data = path.read_bytes()

        async with client_factory() as b2:
            result = await b2.upload(path, 'backups', 'big.bin', parts=True)
            downloaded = await b2.read('backups', 'big.bin')

        assert downloaded == data
        assert [p.length for p in result.parts] == [1000, 1000, 1000, 500]
        assert fake_b2.finished['large-1'] == [
            sha1(data[0:1000]), sha1(data[1000:2000]), sha1(data[2000:3000]), sha1(data[3000:])
        ]
        assert fake_b2.calls['b2_get_upload_part_url'] == 1

    @pytest.mark.asyncio
    async def test_threshold_routes_to_parts(self, client_factory, fake_b2, random_file, server_config):
        server_config.limits.large_file_threshold = 5000
        path = random_file(5000)

        async with client_factory() as b2:
            result = await b2.upload(path, 'backups')

        assert result.is_large_file
        assert fake_b2.files[('bucket-backups', 'data.bin')]['data'] == path.read_bytes()

    @pytest.mark.asyncio
    async def test_expired_part_url(self, client_factory, fake_b2, random_file):
        path = random_file(3000)

        async with client_factory() as b2:
            await b2.authorize(KEY_ID, KEY)
            fake_b2.expire_uploads = 1
            result = await b2.upload(path, 'backups', parts=True)

        assert len(result.parts) == 3
        assert fake_b2.calls['b2_get_upload_part_url'] == 2
        assert fake_b2.calls['b2_upload_part'] == 4
        assert fake_b2.files[('bucket-backups', 'data.bin')]['data'] == path.read_bytes()

    @pytest.mark.asyncio
    async def test_too_small_for_parts(self, client_factory, fake_b2, random_file):
        path = random_file(500)

        async with client_factory() as b2:
            with pytest.raises(InsufficientData):
                await b2.upload(path, 'backups', parts=True)

        assert fake_b2.calls['b2_start_large_file'] == 0

    @pytest.mark.asyncio
    async def test_single_minimum_part_rejected(self, client_factory, fake_b2, random_file):
        path = random_file(1000)

        async with client_factory() as b2:
            with pytest.raises(InsufficientData):
                await b2.upload(path, 'backups', parts=True)

        assert fake_b2.calls['b2_start_large_file'] == 0
        assert ('bucket-backups', 'data.bin') not in fake_b2.files

    @pytest.mark.asyncio
    async def test_cancel_on_failure(self, client_factory, fake_b2, random_file):
        path = random_file(3000)
        fake_b2.expire['b2_finish_large_file'] = 5

        async with client_factory() as b2:
            with pytest.raises(AuthExhausted):
                await b2.upload(path, 'backups', parts=True, cancel_on_failure=True)

        assert fake_b2.calls['b2_cancel_large_file'] == 1
        assert fake_b2.large_files == {}


class TestListingAndDownload:
    """Listings, downloads and directory uploads."""

    @pytest.mark.asyncio
    async def test_ls_follows_pages(self, client_factory, fake_b2, tmp_path):
        for i in range(5):
            (tmp_path / f'f{i}.txt').write_text(str(i))

        async with client_factory() as b2:
            for i in range(5):
                await b2.upload(tmp_path / f'f{i}.txt', 'photos')
            bucket_id = await b2.bucket_id('photos')
            files = await b2.api.list_file_names(bucket_id, max_file_count=2)

        assert [f.file_name for f in files] == [f'f{i}.txt' for i in range(5)]
        assert fake_b2.calls['b2_list_file_names'] == 3

    @pytest.mark.asyncio
    async def test_ls_prefix(self, client_factory, temp_file):
        async with client_factory() as b2:
            await b2.upload(temp_file, 'photos', 'a/notes.txt')
            await b2.upload(temp_file, 'photos', 'b/notes.txt')
            files = await b2.ls('photos', prefix='a/')

        assert [f.file_name for f in files] == ['a/notes.txt']
        assert files[0].content_length == 11
        assert files[0].upload_timestamp.year == 2023

    @pytest.mark.asyncio
    async def test_download_default_output(self, client_factory, temp_file, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        async with client_factory() as b2:
            await b2.upload(temp_file, 'photos', 'deep/dir/report.txt')
            output = await b2.download('photos', 'deep/dir/report.txt')

        assert output.name == 'report.txt'
        assert (tmp_path / 'report.txt').read_bytes() == b'hello world'

    @pytest.mark.asyncio
    async def test_download_after_expiry(self, client_factory, fake_b2, temp_file, tmp_path):
        async with client_factory() as b2:
            await b2.upload(temp_file, 'photos')
            fake_b2.expire['b2_download_file_by_name'] = 1
            output = await b2.download('photos', 'notes.txt', tmp_path / 'out.txt')

        assert output.read_bytes() == b'hello world'

    @pytest.mark.asyncio
    async def test_download_missing(self, client_factory, tmp_path):
        async with client_factory() as b2:
            await b2.authorize(KEY_ID, KEY)
            with pytest.raises(ApiError) as exc_info:
                await b2.download('photos', 'nope.txt', tmp_path / 'nope.txt')

        assert exc_info.value.code == 'not_found'
        assert not (tmp_path / 'nope.txt').exists()

    @pytest.mark.asyncio
    async def test_upload_directory(self, client_factory, fake_b2, tmp_path):
        root = tmp_path / 'album'
        (root / 'sub').mkdir(parents=True)
        (root / 'a.txt').write_text('a')
        (root / 'sub' / 'b.txt').write_text('b')

        async with client_factory() as b2:
            results = [r async for r in b2.upload_directory(root, 'photos', 'backup')]

        assert [r.file_name for r in results] == ['backup/album/a.txt', 'backup/album/sub/b.txt']
        assert fake_b2.files[('bucket-photos', 'backup/album/sub/b.txt')]['data'] == b'b'


class TestSessionPersistence:
    """The session store survives the client."""

    @pytest.mark.asyncio
    async def test_session_saved_on_exit(self, client_factory, tmp_path):
        path = tmp_path / 'config.session'

        async with client_factory(SQLiteSession(path)) as b2:
            await b2.list_buckets()

        with SQLiteSession(path) as storage:
            data = storage.load()

        assert data.key_id == KEY_ID
        assert data.auth_token == 'token-1'
        assert data.buckets['photos'] == 'bucket-photos'

    @pytest.mark.asyncio
    async def test_stored_session_reused(self, client_factory, fake_b2, server_config, tmp_path):
        path = tmp_path / 'config.session'

        async with client_factory(SQLiteSession(path)) as b2:
            await b2.list_buckets()

        async with B2Client(SQLiteSession(path), config=server_config) as b2:
            await b2.ls('photos')

        assert fake_b2.calls['b2_authorize_account'] == 1

    @pytest.mark.asyncio
    async def test_session_saved_after_error(self, client_factory, fake_b2, tmp_path, temp_file):
        path = tmp_path / 'config.session'

        async with client_factory(SQLiteSession(path)) as b2:
            with pytest.raises(BucketNotFound):
                await b2.upload(temp_file, 'missing')

        with SQLiteSession(path) as storage:
            assert storage.load().auth_token == 'token-1'
