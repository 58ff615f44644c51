from .json_snapshot_cache import JsonFileSnapshotCache
from .s3_snapshot_cache import S3SnapshotCache

__all__ = [
    "JsonFileSnapshotCache",
    "S3SnapshotCache",
]
