# routes.py
from fastapi import FastAPI
from controller.citation_controller import citation_router
from controller.document_controller import document_router
from controller.extraction_controller import extraction_router


def register_routes(app: FastAPI) -> None:
    """Register & Access control controllers here."""
    app.include_router(document_router)
    app.include_router(extraction_router)
    app.include_router(citation_router)
