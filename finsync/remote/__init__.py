# FinSync Remote
# REST API client and wire format

from finsync.remote.client import ApiClient, EntityEndpoint, RemoteEndpoint
from finsync.remote.payloads import ParentResolver, RemoteRecord, decode_record, encode_record, to_millis

__all__ = [
    "ApiClient",
    "EntityEndpoint",
    "RemoteEndpoint",
    "ParentResolver",
    "RemoteRecord",
    "decode_record",
    "encode_record",
    "to_millis",
]
