from pagewise.services.minio import ensure_buckets, get_minio_client, wait_for_buckets

__all__ = ["ensure_buckets", "get_minio_client", "wait_for_buckets"]
