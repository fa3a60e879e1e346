"""
Contact form backend: validates submissions and stores them in Supabase.
"""

import logging
import re
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from resume_analyzer.config import Settings, get_settings
from resume_analyzer.errors import InternalServerError, InvalidInputError, PersistenceError, ServiceError
from resume_analyzer.logger import get_logger
from resume_analyzer.models import ContactForm, ContactResponse
from resume_analyzer.services.supabase_service import SupabaseService

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def validate_contact_form(form: ContactForm) -> None:
    """Raise InvalidInputError unless name, email and message are present and the email looks valid."""
    missing = [
        field_name
        for field_name in ("name", "email", "message")
        if not (getattr(form, field_name) or "").strip()
    ]
    if missing:
        logger.warning("Validation failed: missing fields %s", ", ".join(missing))
        raise InvalidInputError(
            "All fields (name, email, message) are required.",
            details=f"Missing: {', '.join(missing)}",
        )
    if not EMAIL_PATTERN.match(form.email):
        logger.warning("Validation failed: invalid email format")
        raise InvalidInputError("Invalid email format.")


def create_app(
    settings: Optional[Settings] = None,
    supabase_service: Optional[SupabaseService] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.getLogger("resume_analyzer").setLevel(settings.log_level)

    supabase_service = supabase_service or SupabaseService(settings.supabase)
    if not settings.supabase.is_configured:
        logger.warning("Supabase environment variables are not set. Contact submissions will fail.")

    app = FastAPI(title="Contact Form API", version="1.0.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if isinstance(exc, PersistenceError):
            body = {
                "error": "Failed to store submission in the database.",
                "details": exc.message,
            }
            if exc.code:
                body["code"] = exc.code
            if exc.hint:
                body["hint"] = exc.hint
        else:
            body = {"error": exc.message}
            if exc.details and not settings.is_production:
                body["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": "Request body must be a JSON object with name, email and message."})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Server error during form submission: %s", exc, exc_info=True)
        body = {"error": "An internal server error occurred."}
        if not settings.is_production:
            body["details"] = str(exc)
        return JSONResponse(status_code=500, content=body)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "contact-form-api"}

    @app.post("/submit-form", response_model=ContactResponse)
    async def submit_form(form: ContactForm):
        logger.info("Received contact form submission")
        validate_contact_form(form)

        try:
            inserted = await supabase_service.save_contact_submission(
                name=form.name,
                email=form.email,
                message=form.message,
            )
        except ServiceError:
            raise
        except Exception as e:
            logger.error("Server error during form submission: %s", e, exc_info=True)
            raise InternalServerError("An internal server error occurred.", details=str(e))
        logger.info("Contact submission stored: %s", inserted.get("id"))
        return ContactResponse(message="Form submitted successfully and stored.", id=inserted.get("id"))

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    server_settings = get_settings().server
    uvicorn.run(app, host=server_settings.host, port=server_settings.contact_port)
