# quote_portal/errors.py
"""Error taxonomy and the single place where errors become HTTP responses."""

import logging
import traceback

from flask import current_app, jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from quote_portal import db

log = logging.getLogger(__name__)

GENERIC_MESSAGE = 'Something went wrong!'


class QuotePortalError(Exception):
    """Base for errors that are safe to show to clients."""

    status_code = 500
    message = GENERIC_MESSAGE

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message

    @property
    def status(self) -> str:
        return 'fail' if 400 <= self.status_code < 500 else 'error'

    def to_dict(self) -> dict:
        return {'status': self.status, 'message': self.message}


class ValidationFailure(QuotePortalError):
    """One or more fields failed their rule.

    ``errors`` holds one ``{field, message}`` entry per failing field.
    """

    status_code = 400
    message = 'Invalid input data'

    def __init__(self, errors: list[dict], message: str | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors)

    def to_dict(self) -> dict:
        body = super().to_dict()
        body['errors'] = self.errors
        return body


class MalformedIdentifier(QuotePortalError):
    status_code = 400
    message = 'Invalid quote id'


class MalformedPayload(QuotePortalError):
    status_code = 400
    message = 'Invalid JSON format in request body'


class NotFound(QuotePortalError):
    status_code = 404
    message = 'Quote not found'


class StoreFailure(QuotePortalError):
    status_code = 500
    message = 'Database operation failed. Please try again.'


def _server_error(exc: Exception, message: str):
    log.error('%s %s failed: %s', request.method, request.path, exc,
              exc_info=(type(exc), exc, exc.__traceback__))
    body = {'status': 'error', 'message': message}
    if current_app.debug:
        body['error'] = type(exc).__name__
        body['stack'] = ''.join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return jsonify(body), 500


def register_error_handlers(app) -> None:
    @app.errorhandler(QuotePortalError)
    def handle_portal_error(err):
        if err.status_code >= 500:
            return _server_error(err, err.message)
        log.warning('%s %s -> %s: %s', request.method, request.path,
                    err.status_code, err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        if err.code == 404:
            message = f"Can't find {request.path} on this server!"
        else:
            message = err.description
        status = 'fail' if err.code < 500 else 'error'
        return jsonify(status=status, message=message), err.code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err):
        db.session.rollback()
        log.warning('constraint violation on %s %s: %s',
                    request.method, request.path, err.orig)
        return jsonify(status='fail', message='Quote violates a storage constraint'), 400

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(err):
        db.session.rollback()
        return _server_error(err, StoreFailure.message)

    @app.errorhandler(Exception)
    def handle_unexpected(err):
        return _server_error(err, GENERIC_MESSAGE)
