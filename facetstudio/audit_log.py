# facetstudio/audit_log.py
# Records every Gemini call in the ai_requests / ai_responses collections.
# Logging failures never break the caller.

import logging
import math
from datetime import datetime
from typing import Callable, Optional, Tuple, TypeVar

from facetstudio.backend import PocketBase, build_filter

log = logging.getLogger(__name__)

T = TypeVar("T")

REQUESTS = "ai_requests"
RESPONSES = "ai_responses"
MAX_LOGGED_CHARS = 1000


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text or "") / 4)


def log_request(pb: Optional[PocketBase], prompt: str, model: str, user_id: str) -> str:
    if pb is None:
        return ""
    try:
        record = pb.collection(REQUESTS).create({"Prompt": prompt, "Model": model, "User": user_id})
        return record.get("id", "")
    except Exception as e:
        log.error("Failed to log AI request: %s", e)
        return ""


def log_response(
    pb: Optional[PocketBase],
    request_id: str,
    response: str,
    tokens: Optional[int],
    user_id: str,
):
    if pb is None:
        return
    if not request_id:
        log.warning("Cannot log response without request_id")
        return

    data = {"Response": response, "Request": request_id, "User": user_id}
    if tokens is not None:
        data["Tokens"] = tokens
    try:
        pb.collection(RESPONSES).create(data)
    except Exception as e:
        log.error("Failed to log AI response: %s", e)


def with_audit_log(
    pb: Optional[PocketBase],
    model: str,
    prompt: str,
    user_id: str,
    call: Callable[[], Tuple[T, Optional[int], Optional[str]]],
) -> T:
    """Run ``call`` between a request and a response log entry.

    ``call`` returns ``(result, tokens, response_text)``. When ``response_text``
    is empty the result's repr is logged instead; either is truncated to
    1000 characters. Exceptions are logged as an ``Error:`` response and
    re-raised.
    """
    request_id = log_request(pb, prompt, model, user_id)
    try:
        result, tokens, response_text = call()
    except Exception as e:
        log_response(pb, request_id, f"Error: {e}", 0, user_id)
        raise

    text = response_text or str(result)
    log_response(pb, request_id, text[:MAX_LOGGED_CHARS], tokens, user_id)
    return result


def get_token_usage(
    pb: PocketBase,
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Tuple[int, int]:
    """Return ``(total_tokens, request_count)`` for a user, optionally bounded by date."""
    expr = "User = {:uid}"
    params = {"uid": user_id}
    if start:
        expr += " && created >= {:start}"
        params["start"] = start
    if end:
        expr += " && created <= {:end}"
        params["end"] = end

    try:
        rows = pb.collection(RESPONSES).get_full_list(filter=build_filter(expr, **params))
    except Exception as e:
        log.error("Failed to get token usage: %s", e)
        return 0, 0

    total = sum(int(r.get("Tokens") or 0) for r in rows)
    return total, len(rows)
