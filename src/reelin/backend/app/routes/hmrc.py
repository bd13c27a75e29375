"""OAuth endpoints connecting a trader's HMRC account."""

from __future__ import annotations

from secrets import token_urlsafe
from typing import Any

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import BadRequest

from reelin.backend.app.services.hmrc_client import HMRCClient
from reelin.backend.services.request_parser import parse_json_payload

blueprint = Blueprint("hmrc", __name__, url_prefix="/api/v1/hmrc")

HMRC_CLIENT_EXTENSION = "reelin.hmrc_client"


def get_hmrc_client() -> HMRCClient:
    """Return the application's HMRC client, creating it from the environment."""

    client = current_app.extensions.get(HMRC_CLIENT_EXTENSION)
    if client is None:
        client = HMRCClient()
        current_app.extensions[HMRC_CLIENT_EXTENSION] = client
    return client


@blueprint.get("/authorize")
def authorize() -> tuple[Any, int]:
    """Return the consent URL and the state value the caller must verify."""

    state = request.args.get("state") or token_urlsafe(24)
    url = get_hmrc_client().authorization_url(state)
    return jsonify({"authorization_url": url, "state": state}), 200


@blueprint.post("/token")
def exchange_token() -> tuple[Any, int]:
    payload = parse_json_payload(request)
    code = payload.get("code")
    if not isinstance(code, str) or not code.strip():
        raise BadRequest("Request body must include an authorisation 'code'")

    tokens = get_hmrc_client().exchange_code(code.strip())
    return jsonify(tokens.as_dict()), 200
