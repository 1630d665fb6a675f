from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from RXMATCH.server.routes.prescription import router as prescription_router
from RXMATCH.server.utils.configurations import server_settings


###############################################################################
app = FastAPI(
    title=server_settings.fastapi.title,
    version=server_settings.fastapi.version,
    description=server_settings.fastapi.description,
)

app.include_router(prescription_router)

@app.get("/")
def redirect_to_docs() -> RedirectResponse:
    return RedirectResponse(url="/docs")
