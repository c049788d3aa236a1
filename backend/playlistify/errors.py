"""Error hierarchy. Every error carries an HTTP status and renders as a flat
``{"message", "code"}`` JSON body through the global handlers in
``error_handlers``.
"""


class PlaylistifyError(Exception):
    def __init__(self, message: str, code: str, http_status: int = 500):
        super().__init__(message)
        self.message = message
        self.code = code
        self.http_status = http_status

    def to_response(self) -> dict:
        return {"message": self.message, "code": self.code}


class ValidationError(PlaylistifyError):
    def __init__(self, message: str):
        super().__init__(message, "VALIDATION_ERROR", 400)


class NotFoundError(PlaylistifyError):
    def __init__(self, message: str):
        super().__init__(message, "NOT_FOUND", 404)


class ForbiddenError(PlaylistifyError):
    def __init__(self, message: str):
        super().__init__(message, "FORBIDDEN", 403)


class PreconditionFailedError(PlaylistifyError):
    def __init__(self, message: str):
        super().__init__(message, "PRECONDITION_FAILED", 412)


class StoreError(PlaylistifyError):
    def __init__(self, message: str):
        super().__init__(message, "STORE_ERROR", 500)


class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id: str):
        super().__init__("Sesión no encontrada")
        self.session_id = session_id
