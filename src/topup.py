import base64
import binascii
import json
import time
from typing import Any, Dict, Optional, Union

from utils.config import get_config
from utils.logger import get_logger
from utils.zendit_client import (
    ZenditAuthError,
    ZenditClient,
    ZenditResponseError,
    ZenditUnavailableError,
)

logger = get_logger("topup")

Number = Union[int, float]


def _response(status_code: int, body: Any) -> dict:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def _error(status_code: int, message: str) -> dict:
    return _response(status_code, {"error": message})


def _method(event: dict) -> Optional[str]:
    """HTTP API (v2) keeps the method under requestContext.http, REST API (v1) at the top."""
    method = event.get("requestContext", {}).get("http", {}).get("method") or event.get("httpMethod")
    return method.upper() if isinstance(method, str) else None


def _parse_body(event: dict) -> Any:
    """
    Extract and parse the JSON body from the Lambda event.

    - API Gateway: event["body"] is a JSON string, possibly base64-encoded.
    - Direct tests: event["body"] may already be a dict.

    Raises ValueError when the body is not valid JSON.
    """
    body = event.get("body")

    if body is None or isinstance(body, (dict, list)):
        return body

    raw_body = body
    if event.get("isBase64Encoded"):
        try:
            raw_body = base64.b64decode(body).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ValueError("body is not valid base64 text") from e

    try:
        return json.loads(raw_body)
    except json.JSONDecodeError:
        logger.warning(
            "topup.invalid_json",
            extra={"body_preview": str(raw_body)[:200]},
        )
        raise


def _coerce_amount(amount: Any) -> Number:
    """
    Numeric value of the amount as sent to Zendit.
    Whole numbers go out as ints (10, not 10.0). Raises ValueError if not numeric.
    """
    try:
        value = float(amount)
    except (TypeError, ValueError) as e:
        raise ValueError(f"amount {amount!r} is not a number") from e

    if value != value or value in (float("inf"), float("-inf")):
        raise ValueError(f"amount {amount!r} is not a finite number")

    return int(value) if value.is_integer() else value


def _custom_identifier() -> str:
    """Caller correlation id, unique per request (epoch milliseconds)."""
    return f"web-{int(time.time() * 1000)}"


def build_topup_payload(operator: Dict[str, Any], phone: str, amount: Number) -> Dict[str, Any]:
    # Zendit uses operatorId; some listings only carry id
    operator_id = operator.get("operatorId")
    if operator_id is None:
        operator_id = operator.get("id")

    return {
        "operatorId": operator_id,
        "phoneNumber": phone,
        "amount": amount,
        "customIdentifier": _custom_identifier(),
    }


def handle_topup(event: dict, zendit: ZenditClient) -> dict:
    """
    Validate the request, then authenticate, resolve the carrier and submit
    the top-up, strictly in that order. The first failure ends the request.
    """
    # 1) Only POST
    method = _method(event)
    if method != "POST":
        logger.info("topup.method_not_allowed", extra={"method": method})
        return _error(405, "POST only")

    # 2) Parse JSON body
    try:
        payload = _parse_body(event)
    except ValueError:
        return _error(400, "Body must be JSON")

    if not isinstance(payload, dict):
        payload = {}

    # 3) Required fields
    phone = payload.get("phone")
    amount = payload.get("amount")

    if not phone or not amount:
        logger.warning(
            "topup.missing_fields",
            extra={"phone_present": bool(phone), "amount_present": bool(amount)},
        )
        return _error(400, "phone & amount required")

    try:
        amount_value = _coerce_amount(amount)
    except ValueError as e:
        logger.warning("topup.invalid_amount", extra={"error": str(e)})
        return _error(400, "amount must be a number")

    logger.info("topup.request_valid", extra={"phone": phone, "amount": amount_value})

    try:
        # 4) OAuth token
        try:
            token = zendit.fetch_token()
        except ZenditAuthError as e:
            logger.error("topup.token_failed", extra={"error": str(e)})
            return _error(502, "Could not get Zendit token")

        # 5) Carrier from the phone number; first match wins
        operators = zendit.find_operators(token, phone)
        operator = operators[0] if operators else None
        if not operator or not isinstance(operator, dict):
            logger.warning("topup.carrier_not_found", extra={"phone": phone})
            return _error(400, "Could not detect carrier for this number")

        topup_payload = build_topup_payload(operator, phone, amount_value)
        logger.info(
            "topup.carrier_resolved",
            extra={
                "operator_id": topup_payload["operatorId"],
                "candidates": len(operators),
            },
        )

        # 6) The actual top-up
        ok, result = zendit.submit_topup(token, topup_payload)

    except ZenditUnavailableError:
        return _error(502, "Zendit unreachable")
    except ZenditResponseError:
        return _error(502, "Zendit returned a non-JSON response")

    status_code = 200 if ok else 502
    logger.info(
        "topup.completed",
        extra={
            "status_code": status_code,
            "custom_identifier": topup_payload["customIdentifier"],
            "provider_status": result.get("status") if isinstance(result, dict) else None,
        },
    )
    return _response(status_code, result)


def lambda_handler(event, context):
    logger.info(
        "topup.lambda_start",
        extra={"request_id": getattr(context, "aws_request_id", None)},
    )

    # Reject before touching config or Secrets Manager
    if _method(event) != "POST":
        logger.info("topup.method_not_allowed", extra={"method": _method(event)})
        return _error(405, "POST only")

    try:
        config = get_config()
    except (RuntimeError, ValueError) as e:
        # Misconfiguration is a 500, not a 4xx
        logger.error("topup.env_error", extra={"error": str(e)})
        return _error(500, "server_misconfigured")

    with ZenditClient(config) as zendit:
        return handle_topup(event, zendit)
