# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller helpers: translate domain failures into HTTP errors.
"""

from fastapi import HTTPException

from rosca.core.errors import CONFLICT_ERRORS, FORBIDDEN_ERRORS, RotationError


def not_found(exc: KeyError) -> HTTPException:
    message = exc.args[0] if exc.args else "Not found"
    return HTTPException(status_code=404, detail={"code": "not-found", "message": message})


def rotation_error(exc: RotationError) -> HTTPException:
    if isinstance(exc, FORBIDDEN_ERRORS):
        status_code = 403
    elif isinstance(exc, CONFLICT_ERRORS):
        status_code = 409
    else:
        status_code = 400
    return HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "message": exc.message},
    )
