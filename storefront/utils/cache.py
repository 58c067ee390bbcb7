import json
from typing import Any

async def kv_get_json(backend, key: str) -> Any:
    """Decoded JSON from the slot, or None when the slot is empty."""
    if val := await backend.get(key):
        return json.loads(val)
    return None

async def kv_set_json(backend, key: str, value: Any) -> None:
    await backend.put(key, json.dumps(value, ensure_ascii=False, separators=(",", ":")))
