"""Request wrapper for serverless invocation: CORS, method checks, error mapping.

Events and responses use the ``{"httpMethod", "body", "isBase64Encoded"}`` /
``{"statusCode", "headers", "body"}`` dict shape of function platforms.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from typing import Any

from collage.config import Settings
from collage.errors import CompositorError, ValidationError
from collage.models import MergeRequest, MergeResult, OutputFormat
from collage.pipeline import merge_images
from collage.sources import SourceResolver

logger = logging.getLogger(__name__)


def cors_headers() -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": "*",
        "Access-Control-Allow-Methods": "POST, OPTIONS",
    }


def json_response(status_code: int, body: Any) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {**cors_headers(), "Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def error_response(status_code: int, message: str) -> dict[str, Any]:
    return json_response(status_code, {"error": message})


def png_response(result: MergeResult) -> dict[str, Any]:
    filename = f"merged-{int(time.time() * 1000)}.png"
    return {
        "statusCode": 200,
        "headers": {
            **cors_headers(),
            "Content-Type": "image/png",
            "Content-Disposition": f'inline; filename="{filename}"',
        },
        "body": base64.b64encode(result.png).decode("ascii"),
        "isBase64Encoded": True,
    }


def parse_body(event: dict[str, Any]) -> Any:
    """Decode the JSON request body, undoing platform base64 transport first."""
    raw = event.get("body") or "{}"
    if event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError("Request body is not valid base64") from exc
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValidationError("Request body is not valid UTF-8") from exc
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Invalid JSON body: {exc.msg}") from exc


def handle_event(
    event: dict[str, Any],
    settings: Settings | None = None,
    resolver: SourceResolver | None = None,
) -> dict[str, Any]:
    """Serve one invocation and always return a response dict."""
    settings = settings or Settings()
    method = str(event.get("httpMethod") or "").upper()
    if method == "OPTIONS":
        return {"statusCode": 204, "headers": cors_headers(), "body": ""}
    if method != "POST":
        return error_response(405, "Use POST")

    try:
        request = MergeRequest.from_payload(parse_body(event), settings)
        result = merge_images(request, resolver=resolver, settings=settings)
    except CompositorError as exc:
        logger.warning("Merge request rejected: %s", exc)
        return error_response(400, str(exc))
    except Exception as exc:
        logger.exception("Merge request failed")
        return error_response(400, str(exc) or exc.__class__.__name__)

    if request.output is OutputFormat.JSON:
        return json_response(200, result.to_dict())
    return png_response(result)
