import json


def json_encoder(payload):
    """Serialize *payload* as compact UTF-8 JSON."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
