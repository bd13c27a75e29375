"""Endpoints for filing VAT returns and exporting filed submissions."""

from __future__ import annotations

import logging
import os
from http import HTTPStatus
from pathlib import Path
from typing import Any

from flask import Blueprint, Response, current_app, jsonify, request, url_for

from reelin.backend.app.http import problem_response
from reelin.backend.app.services.hmrc_client import TokenSet
from reelin.backend.app.services.rules_service import prepare_vat_submission
from reelin.backend.app.services.submission_store import (
    InMemorySubmissionRepository,
    SQLiteSubmissionRepository,
    render_csv,
    render_pdf,
)
from reelin.backend.services.request_parser import parse_bearer_token, parse_json_payload

from .hmrc import get_hmrc_client

blueprint = Blueprint("vat", __name__, url_prefix="/api/v1/vat")

logger = logging.getLogger(__name__)

SubmissionRepository = InMemorySubmissionRepository | SQLiteSubmissionRepository

REPOSITORY_EXTENSION = "reelin.submissions"


def _parse_positive_int(value: str | None, *, env: str) -> int | None:
    if value is None or not value.strip():
        return None
    try:
        parsed = int(value)
    except ValueError:
        logger.warning("Ignoring invalid value for %s: %s", env, value)
        return None
    if parsed <= 0:
        logger.warning("Ignoring non-positive value for %s: %s", env, value)
        return None
    return parsed


def build_submission_repository() -> SubmissionRepository:
    """Create the repository selected by ``REELIN_SUBMISSION_*`` settings."""

    db_path = os.getenv("REELIN_SUBMISSION_DB")
    if db_path:
        return SQLiteSubmissionRepository(Path(db_path).expanduser())

    capacity = _parse_positive_int(
        os.getenv("REELIN_SUBMISSION_CAPACITY"), env="REELIN_SUBMISSION_CAPACITY"
    )
    if capacity is not None:
        return InMemorySubmissionRepository(max_items=capacity)
    return InMemorySubmissionRepository()


def _repository() -> SubmissionRepository:
    repository = current_app.extensions.get(REPOSITORY_EXTENSION)
    if repository is None:
        repository = build_submission_repository()
        current_app.extensions[REPOSITORY_EXTENSION] = repository
    return repository


def _serialise_links(submission_id: str) -> dict[str, str]:
    return {
        "self": url_for("vat.get_submission", submission_id=submission_id),
        "csv": url_for("vat.download_submission_csv", submission_id=submission_id),
        "pdf": url_for("vat.download_submission_pdf", submission_id=submission_id),
    }


def _not_found() -> tuple[Any, int]:
    return problem_response(
        "not_found", status=HTTPStatus.NOT_FOUND, message="Submission not found"
    ).to_response()


@blueprint.post("/returns")
def submit_return() -> tuple[Any, int]:
    """File a VAT return with HMRC and keep a copy of the receipt."""

    submission, vat_return = prepare_vat_submission(parse_json_payload(request))

    access_token = parse_bearer_token(request)
    token = None
    if access_token:
        token = TokenSet(
            access_token=access_token, expires_at=submission.token_expires_at
        )

    client = get_hmrc_client()
    receipt = client.submit_vat_return(
        submission.vrn, submission.period_key, vat_return, token
    )
    record = _repository().save(
        period_key=submission.period_key,
        vrn=submission.vrn,
        boxes=vat_return.boxes(),
        receipt=receipt,
        demo=client.demo_mode,
    )
    logger.info(
        "Stored VAT submission %s for period %s", record.id, record.period_key
    )

    payload = record.as_dict()
    payload["links"] = _serialise_links(record.id)
    return jsonify(payload), HTTPStatus.CREATED


@blueprint.get("/returns")
def list_submissions() -> tuple[Any, int]:
    vrn = request.args.get("vrn") or None
    records = _repository().list(vrn=vrn)
    return jsonify({"submissions": [record.as_dict() for record in records]}), HTTPStatus.OK


@blueprint.get("/returns/<string:submission_id>")
def get_submission(submission_id: str) -> tuple[Any, int]:
    try:
        record = _repository().get(submission_id)
    except KeyError:
        return _not_found()

    payload = record.as_dict()
    payload["links"] = _serialise_links(record.id)
    return jsonify(payload), HTTPStatus.OK


@blueprint.get("/returns/<string:submission_id>/csv")
def download_submission_csv(submission_id: str) -> Response | tuple[Any, int]:
    try:
        record = _repository().get(submission_id)
    except KeyError:
        return _not_found()

    response = Response(render_csv(record), mimetype="text/csv; charset=utf-8")
    response.headers["Content-Disposition"] = (
        f"attachment; filename=vat-return-{record.period_key}-{submission_id}.csv"
    )
    return response


@blueprint.get("/returns/<string:submission_id>/pdf")
def download_submission_pdf(submission_id: str) -> Response | tuple[Any, int]:
    try:
        record = _repository().get(submission_id)
    except KeyError:
        return _not_found()

    response = Response(render_pdf(record), mimetype="application/pdf")
    response.headers["Content-Disposition"] = (
        f"attachment; filename=vat-return-{record.period_key}-{submission_id}.pdf"
    )
    return response
