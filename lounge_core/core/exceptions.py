from fastapi import HTTPException


class LoungeCoreException(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundException(LoungeCoreException):
    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ConflictException(LoungeCoreException):
    pass


class ValidationException(LoungeCoreException):
    pass


class PersistenceTimeoutException(LoungeCoreException):
    def __init__(self, operation: str):
        super().__init__(f"Persistence unavailable during {operation}")
        self.operation = operation


class PowerSignalFailedException(LoungeCoreException):
    def __init__(self, action: str, location: str, reason: str):
        super().__init__(f"Power-{action} signal for '{location}' failed: {reason}")
        self.action = action
        self.location = location
        self.reason = reason


def not_found_exception(exc: NotFoundException):
    return HTTPException(status_code=404, detail=exc.message)


def conflict_exception(exc: ConflictException):
    return HTTPException(status_code=409, detail=exc.message)


def validation_exception(exc: ValidationException):
    return HTTPException(status_code=422, detail=exc.message)


def timeout_exception(exc: PersistenceTimeoutException):
    return HTTPException(status_code=503, detail=exc.message)


def to_http_exception(exc: LoungeCoreException) -> HTTPException:
    if isinstance(exc, NotFoundException):
        return not_found_exception(exc)
    if isinstance(exc, ConflictException):
        return conflict_exception(exc)
    if isinstance(exc, ValidationException):
        return validation_exception(exc)
    if isinstance(exc, PersistenceTimeoutException):
        return timeout_exception(exc)
    return HTTPException(status_code=500, detail=exc.message)
