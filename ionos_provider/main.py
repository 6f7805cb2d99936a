import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ionos_provider.api import router
from ionos_provider.errors import DriverError, ErrorCode
from ionos_provider.logging_config import configure_logging


logger = logging.getLogger(__name__)

HTTP_STATUS_BY_CODE = {
    ErrorCode.INVALID_ARGUMENT: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.ABORTED: 409,
    ErrorCode.CANCELED: 499,
    ErrorCode.INTERNAL: 500,
    ErrorCode.UNIMPLEMENTED: 501,
    ErrorCode.UNAVAILABLE: 503,
}


app = FastAPI(title="IONOS Machine Provider")
app.include_router(router)


@app.exception_handler(DriverError)
def driver_error_handler(_request: Request, exc: DriverError) -> JSONResponse:
    status_code = HTTP_STATUS_BY_CODE.get(exc.code, 500)
    if status_code >= 500 and exc.code != ErrorCode.UNIMPLEMENTED:
        logger.error("driver request failed: %s", exc)
    return JSONResponse(
        status_code=status_code,
        content={"code": exc.code.value, "message": exc.message},
    )


@app.on_event("startup")
def startup() -> None:
    configure_logging()
    logger.info("machine provider startup complete")
