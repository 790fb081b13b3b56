import logging
from sqlalchemy.exc import SQLAlchemyError
from . import db

logger = logging.getLogger(__name__)


class CarebaseError(Exception):
    """Base error mapped to an HTTP status at the request boundary."""
    status_code = 500

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = errors

    def to_dict(self):
        body = {"message": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationFailed(CarebaseError):
    status_code = 400


class InvalidIdentifier(CarebaseError):
    status_code = 400


class Unauthorized(CarebaseError):
    status_code = 401


class NotFound(CarebaseError):
    status_code = 404


class Conflict(CarebaseError):
    status_code = 409


def register_error_handlers(api):
    @api.errorhandler(CarebaseError)
    def handle_carebase_error(error):
        db.session.rollback()
        return error.to_dict(), error.status_code

    @api.errorhandler(SQLAlchemyError)
    def handle_store_error(error):
        db.session.rollback()
        logger.exception("Store failure")
        return {"message": "Server error", "error": str(error)}, 500
