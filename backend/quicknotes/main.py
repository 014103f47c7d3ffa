import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from quicknotes.api.notes import router as notes_router
from quicknotes.errors import QuickNotesError, ValidationError
from quicknotes.utils import settings

logging.basicConfig(
    level=settings.log_level(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="QuickNotes API")
app.include_router(notes_router)


def _field_name(err: dict) -> str:
    loc = [str(part) for part in err.get("loc", ())]
    # ("query", "limit") -> "limit"; an unparseable body is reported as "body"
    if err.get("type") == "json_invalid" or len(loc) < 2:
        return loc[0] if loc else "__root__"
    return ".".join(loc[1:])


@app.exception_handler(QuickNotesError)
async def handle_quicknotes_error(request: Request, exc: QuickNotesError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields: dict[str, str] = {}
    for err in exc.errors():
        fields.setdefault(_field_name(err), err.get("msg", "Invalid value"))
    return await handle_quicknotes_error(request, ValidationError("Invalid input", fields=fields))


@app.get("/health")
def health():
    return {"ok": True}
