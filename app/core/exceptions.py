"""
Excepciones de la aplicación.
Las HTTP se traducen directamente en respuestas de error para el kiosko.
"""

from fastapi import HTTPException, status


class NotFoundException(HTTPException):
    """Recurso no encontrado (404): especialidad o médico no resuelto."""

    def __init__(self, resource: str = "Recurso", detail: str | None = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail or f"{resource} no encontrado",
        )


class ValidationException(HTTPException):
    """Error de validación de parámetros (422)."""

    def __init__(self, detail: str = "Error de validación"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
        )


class UpstreamException(HTTPException):
    """El backend de agendamiento no pudo responder (502)."""

    def __init__(self, detail: str = "Error al consultar el backend de agendamiento"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
        )


class AuthenticationError(Exception):
    """Error de login/refresh contra el servicio de autenticación."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code
        super().__init__(message)
