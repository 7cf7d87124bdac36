from shared.middleware.error_handler import error_body, error_envelope_middleware
from shared.middleware.request_id import request_id_middleware

__all__ = ["error_body", "error_envelope_middleware", "request_id_middleware"]
