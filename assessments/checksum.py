# assessments/checksum.py
import hashlib
import json


def answers_checksum(answers):
    """
    SHA-256 over the canonical JSON of an answers map ``{question_id: payload}``.

    Keys are compared as strings so a client that sends ``{"12": ...}`` and one
    that hashes ``{12: ...}`` agree.
    """
    canonical = {str(k): v for k, v in (answers or {}).items()}
    encoded = json.dumps(canonical, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
