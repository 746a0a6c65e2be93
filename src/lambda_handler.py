from __future__ import annotations

import base64
import json
import logging

from dotenv import load_dotenv

load_dotenv()

from .app.bootstrap import build_dispatcher  # noqa: E402
from .config import get_settings  # noqa: E402
from .presentation.line_webhook_parser import (  # noqa: E402
    SignatureVerificationError,
    parse_events,
    verify_signature,
)

settings = get_settings()
dispatcher = build_dispatcher(settings)

logger = logging.getLogger(__name__)

OK_RESPONSE = {"statusCode": 200, "body": json.dumps({"status": "ok"})}


def lambda_handler(event, _context):
    headers = event.get("headers") or {}
    signature = headers.get("X-Line-Signature") or headers.get("x-line-signature")

    try:
        body = _extract_body(event)
        verify_signature(settings.line_channel_secret, body, signature)
    except SignatureVerificationError as exc:
        logger.warning("Signature verification failed: %s", exc)
        return {"statusCode": 403, "body": json.dumps({"message": "Forbidden"})}
    except (ValueError, UnicodeDecodeError) as exc:
        logger.warning("Undecodable webhook body: %s", exc)
        return OK_RESPONSE

    # LINE 側の再送を誘発しないよう、以降の失敗はすべて 200 で返す
    try:
        events = parse_events(body)
    except ValueError as exc:
        logger.warning("Malformed webhook payload: %s", exc)
        return OK_RESPONSE
    except Exception:  # pylint: disable=broad-except
        logger.exception("Failed to parse webhook payload")
        return OK_RESPONSE

    logger.info(
        "Parsed LINE webhook events | count=%s types=%s",
        len(events),
        [evt.event_type for evt in events],
    )
    if not events:
        logger.info("No dispatchable events found in payload")

    try:
        dispatcher.handle(events)
    except Exception:  # pylint: disable=broad-except
        logger.exception("Webhook dispatch failed")

    return OK_RESPONSE


def _extract_body(event) -> str:
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body).decode("utf-8")
    return body
