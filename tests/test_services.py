import io
import unittest
from datetime import datetime, timezone

from botocore.exceptions import ClientError, EndpointConnectionError

from storage_explorer.errors import (
    INVALID_PROFILE,
    MISSING_BUCKET,
    TRANSPORT_ERROR,
    UNKNOWN_ERROR,
    InvalidRequestError,
    StoreError,
    TransportError,
    UnknownError,
)
from storage_explorer.profiles import ConnectionProfile
from storage_explorer.services import LIMITED_MESSAGE, ObjectStoreGateway, normalize_error


def client_error(code: str, message: str = "", operation: str = "ListObjectsV2") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


class FakeS3Client:
    def __init__(self, buckets=None, object_responses=None, get_object_responses=None, list_buckets_error=None):
        self.buckets = buckets or []
        self.object_responses = {name: iter(responses) for name, responses in (object_responses or {}).items()}
        self.get_object_responses = get_object_responses or {}
        self.list_buckets_error = list_buckets_error
        self.list_objects_kwargs = []
        self.get_object_calls = []

    def list_buckets(self):
        if self.list_buckets_error is not None:
            raise self.list_buckets_error
        return {"Buckets": self.buckets}

    def list_objects_v2(self, **kwargs):
        self.list_objects_kwargs.append(kwargs)
        response = next(self.object_responses[kwargs["Bucket"]])
        if isinstance(response, Exception):
            raise response
        return response

    def get_object(self, **kwargs):
        self.get_object_calls.append(kwargs)
        response = self.get_object_responses[(kwargs["Bucket"], kwargs["Key"])]
        if isinstance(response, Exception):
            raise response
        return response


class RecordingFactory:
    def __init__(self, client):
        self.client = client
        self.calls = []

    def __call__(self, service_name, **kwargs):
        self.calls.append((service_name, kwargs))
        return self.client


def make_profile(**overrides) -> ConnectionProfile:
    values = {
        "id": "p1",
        "name": "local",
        "endpoint": "http://localhost:9000",
        "access_key_id": "access",
        "secret_access_key": "secret",
    }
    values.update(overrides)
    return ConnectionProfile(**values)


class ListObjectsTests(unittest.TestCase):
    def test_lists_folders_and_files_at_root(self):
        modified = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        fake_client = FakeS3Client(
            object_responses={
                "docs": [
                    {
                        "CommonPrefixes": [{"Prefix": "a/"}, {"Prefix": "b/"}],
                        "Contents": [
                            {
                                "Key": "readme.txt",
                                "Size": 10,
                                "LastModified": modified,
                                "ETag": '"abc"',
                                "StorageClass": "STANDARD",
                            }
                        ],
                        "IsTruncated": False,
                    }
                ]
            }
        )
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(fake_client))

        page = gateway.list_objects(make_profile(), "docs")

        self.assertEqual(["a/", "b/"], page.folders)
        self.assertEqual(1, len(page.files))
        item = page.files[0]
        self.assertEqual("readme.txt", item.key)
        self.assertEqual(10, item.size)
        self.assertEqual("2024-01-02T03:04:05+00:00", item.last_modified)
        self.assertEqual('"abc"', item.etag)
        self.assertEqual("STANDARD", item.storage_class)
        self.assertFalse(page.is_truncated)
        self.assertIsNone(page.next_continuation_token)

        kwargs = fake_client.list_objects_kwargs[0]
        self.assertEqual({"Bucket": "docs", "Delimiter": "/", "MaxKeys": 200}, kwargs)

    def test_directory_marker_is_filtered(self):
        fake_client = FakeS3Client(
            object_responses={
                "docs": [
                    {
                        "Contents": [{"Key": "a/", "Size": 0}, {"Key": "a/x.txt", "Size": 3}],
                        "IsTruncated": False,
                    }
                ]
            }
        )
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(fake_client))

        page = gateway.list_objects(make_profile(), "docs", prefix="a/")

        self.assertEqual(["a/x.txt"], [item.key for item in page.files])
        self.assertEqual([], page.folders)
        self.assertEqual("a/", fake_client.list_objects_kwargs[0]["Prefix"])

    def test_continuation_token_and_page_size_are_forwarded(self):
        fake_client = FakeS3Client(
            object_responses={
                "docs": [
                    {
                        "Contents": [{"Key": "b.txt"}],
                        "IsTruncated": True,
                        "NextContinuationToken": "token-2",
                    }
                ]
            }
        )
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(fake_client))

        page = gateway.list_objects(make_profile(), "docs", continuation_token="token-1", max_keys=5000)

        kwargs = fake_client.list_objects_kwargs[0]
        self.assertEqual("token-1", kwargs["ContinuationToken"])
        self.assertEqual(1000, kwargs["MaxKeys"])
        self.assertTrue(page.is_truncated)
        self.assertEqual("token-2", page.next_continuation_token)
        self.assertEqual(0, page.files[0].size)

    def test_empty_response_yields_empty_page(self):
        fake_client = FakeS3Client(object_responses={"docs": [{}]})
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(fake_client))

        page = gateway.list_objects(make_profile(), "docs", prefix="empty/")

        self.assertTrue(page.is_empty)
        self.assertEqual("empty/", page.prefix)

    def test_missing_bucket_is_rejected_before_any_call(self):
        factory = RecordingFactory(FakeS3Client())
        gateway = ObjectStoreGateway(client_factory=factory)

        with self.assertRaises(InvalidRequestError) as ctx:
            gateway.list_objects(make_profile(), "  ")

        self.assertEqual(MISSING_BUCKET, ctx.exception.code)
        self.assertEqual([], factory.calls)

    def test_invalid_profile_is_rejected_before_any_call(self):
        factory = RecordingFactory(FakeS3Client())
        gateway = ObjectStoreGateway(client_factory=factory)

        with self.assertRaises(InvalidRequestError) as ctx:
            gateway.list_objects(make_profile(secret_access_key=""), "docs")

        self.assertEqual(INVALID_PROFILE, ctx.exception.code)
        self.assertEqual([], factory.calls)

    def test_store_errors_keep_their_code(self):
        fake_client = FakeS3Client(object_responses={"missing": [client_error("NoSuchBucket", "No such bucket")]})
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(fake_client))

        with self.assertRaises(StoreError) as ctx:
            gateway.list_objects(make_profile(), "missing")

        self.assertEqual({"message": "No such bucket", "code": "NoSuchBucket"}, ctx.exception.to_dict())


class ClientConfigurationTests(unittest.TestCase):
    def test_client_uses_profile_settings(self):
        factory = RecordingFactory(FakeS3Client())
        gateway = ObjectStoreGateway(client_factory=factory)

        gateway.list_buckets(make_profile(endpoint="minio.local:9000", region="eu-west-1"))

        service_name, kwargs = factory.calls[0]
        self.assertEqual("s3", service_name)
        self.assertEqual("https://minio.local:9000", kwargs["endpoint_url"])
        self.assertEqual("eu-west-1", kwargs["region_name"])
        self.assertEqual("access", kwargs["aws_access_key_id"])
        self.assertEqual("secret", kwargs["aws_secret_access_key"])
        self.assertEqual("path", kwargs["config"].s3["addressing_style"])
        self.assertEqual("s3v4", kwargs["config"].signature_version)

    def test_virtual_host_addressing_when_path_style_disabled(self):
        factory = RecordingFactory(FakeS3Client())
        gateway = ObjectStoreGateway(client_factory=factory)

        gateway.list_buckets(make_profile(force_path_style=False))

        self.assertEqual("auto", factory.calls[0][1]["config"].s3["addressing_style"])


class ConnectionTests(unittest.TestCase):
    def test_successful_connection(self):
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(FakeS3Client()))

        result = gateway.test_connection(make_profile())

        self.assertTrue(result.connected)
        self.assertFalse(result.limited_permissions)
        self.assertNotIn("limitedPermissions", result.to_dict())

    def test_access_denied_counts_as_limited_success(self):
        fake_client = FakeS3Client(list_buckets_error=client_error("AccessDenied", "Denied", "ListBuckets"))
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(fake_client))

        result = gateway.test_connection(make_profile())

        self.assertEqual(
            {"connected": True, "limitedPermissions": True, "message": LIMITED_MESSAGE},
            result.to_dict(),
        )

    def test_other_store_errors_fail_the_test(self):
        fake_client = FakeS3Client(
            list_buckets_error=client_error("InvalidAccessKeyId", "Bad key", "ListBuckets")
        )
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(fake_client))

        with self.assertRaises(StoreError) as ctx:
            gateway.test_connection(make_profile())

        self.assertEqual("InvalidAccessKeyId", ctx.exception.code)

    def test_unreachable_endpoint_is_a_transport_error(self):
        fake_client = FakeS3Client(
            list_buckets_error=EndpointConnectionError(endpoint_url="http://localhost:9000")
        )
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(fake_client))

        with self.assertRaises(TransportError) as ctx:
            gateway.test_connection(make_profile())

        self.assertEqual(TRANSPORT_ERROR, ctx.exception.code)


class ListBucketsTests(unittest.TestCase):
    def test_lists_named_buckets(self):
        created = datetime(2023, 5, 6, tzinfo=timezone.utc)
        fake_client = FakeS3Client(
            buckets=[{"Name": "docs", "CreationDate": created}, {"Name": ""}, {"Name": "logs"}]
        )
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(fake_client))

        buckets = gateway.list_buckets(make_profile())

        self.assertEqual(["docs", "logs"], [bucket.name for bucket in buckets])
        self.assertEqual("2023-05-06T00:00:00+00:00", buckets[0].creation_date)
        self.assertIsNone(buckets[1].creation_date)

    def test_access_denied_is_an_error_here(self):
        fake_client = FakeS3Client(list_buckets_error=client_error("AccessDenied", "Denied", "ListBuckets"))
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(fake_client))

        with self.assertRaises(StoreError) as ctx:
            gateway.list_buckets(make_profile())

        self.assertEqual({"message": "Denied", "code": "AccessDenied"}, ctx.exception.to_dict())


class DownloadObjectTests(unittest.TestCase):
    def test_filename_comes_from_last_key_segment(self):
        fake_client = FakeS3Client(
            get_object_responses={
                ("docs", "a/b/report.pdf"): {
                    "Body": io.BytesIO(b"pdf-bytes"),
                    "ContentType": "application/pdf",
                    "ContentLength": 9,
                }
            }
        )
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(fake_client))

        download = gateway.download_object(make_profile(), "docs", "a/b/report.pdf")

        self.assertEqual("report.pdf", download.filename)
        self.assertEqual("application/pdf", download.content_type)
        self.assertEqual(9, download.content_length)
        self.assertEqual(b"pdf-bytes", b"".join(download.iter_chunks(4)))

    def test_stored_content_disposition_wins(self):
        fake_client = FakeS3Client(
            get_object_responses={
                ("docs", "blob"): {
                    "Body": io.BytesIO(b""),
                    "ContentDisposition": 'attachment; filename="original.txt"',
                }
            }
        )
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(fake_client))

        download = gateway.download_object(make_profile(), "docs", "blob")

        self.assertEqual("original.txt", download.filename)

    def test_missing_object_is_a_store_error(self):
        fake_client = FakeS3Client(
            get_object_responses={("docs", "gone.txt"): client_error("NoSuchKey", "Not found", "GetObject")}
        )
        gateway = ObjectStoreGateway(client_factory=RecordingFactory(fake_client))

        with self.assertRaises(StoreError) as ctx:
            gateway.download_object(make_profile(), "docs", "gone.txt")

        self.assertEqual("NoSuchKey", ctx.exception.code)


class NormalizeErrorTests(unittest.TestCase):
    def test_client_error_without_code(self):
        error = normalize_error(ClientError({"Error": {}}, "ListObjectsV2"))

        self.assertIsInstance(error, StoreError)
        self.assertEqual(UNKNOWN_ERROR, error.code)
        self.assertTrue(error.message)

    def test_unexpected_exception(self):
        error = normalize_error(ValueError("boom"))

        self.assertIsInstance(error, UnknownError)
        self.assertEqual({"message": "boom", "code": UNKNOWN_ERROR}, error.to_dict())

    def test_gateway_errors_pass_through(self):
        original = TransportError("offline")

        self.assertIs(original, normalize_error(original))


if __name__ == "__main__":
    unittest.main()
