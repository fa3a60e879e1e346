import logging
from typing import Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile as StarletteUploadFile

from resume_analyzer.config import Settings, get_settings
from resume_analyzer.errors import InternalServerError, InvalidInputError, ServiceError
from resume_analyzer.logger import get_logger
from resume_analyzer.models import UploadResponse
from resume_analyzer.services.cv_analyzer import CVAnalyzer
from resume_analyzer.services.file_processor import FileProcessor
from resume_analyzer.services.supabase_service import SupabaseService

logger = get_logger(__name__)

RESUME_FIELD = "resumeFile"


def create_app(
    settings: Optional[Settings] = None,
    file_processor: Optional[FileProcessor] = None,
    cv_analyzer: Optional[CVAnalyzer] = None,
    supabase_service: Optional[SupabaseService] = None,
) -> FastAPI:
    """Build the resume analyzer app; collaborators default to ones built from ``settings``."""
    settings = settings or get_settings()
    logging.getLogger("resume_analyzer").setLevel(settings.log_level)

    file_processor = file_processor or FileProcessor(settings.upload)
    cv_analyzer = cv_analyzer or CVAnalyzer(settings.llm, settings.truncation)
    supabase_service = supabase_service or SupabaseService(settings.supabase)

    if not settings.llm.api_key:
        logger.warning("OPENROUTER_API_KEY is not set. Resume analysis requests will fail.")
    if not settings.supabase.is_configured:
        logger.warning("Supabase environment variables are not set. Upload logging will fail.")

    app = FastAPI(title="AI Resume Analyzer API", version="1.0.0")

    # CORS middleware for frontend integration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        body = {"message": exc.message}
        if exc.details and not settings.is_production:
            body["details"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"message": "Invalid upload request."})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Error processing upload: %s", exc, exc_info=True)
        body = {"message": "Server error during processing."}
        if not settings.is_production:
            body["details"] = str(exc)
        return JSONResponse(status_code=500, content=body)

    @app.get("/")
    async def root():
        return {"message": "AI Resume Analyzer Backend is running!"}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "resume-analyzer-api"}

    @app.post("/api/upload")
    async def upload_resume(
        request: Request,
        resume_file: UploadFile | None = File(None, alias=RESUME_FIELD),
        job_description: str = Form("", alias="jobDescription"),
    ):
        """
        Extract text from an uploaded resume and return AI feedback, optionally against a job description
        """
        form = await request.form()
        file_fields = [key for key, value in form.multi_items() if isinstance(value, StarletteUploadFile)]
        if len(file_fields) > 1 or any(key != RESUME_FIELD for key in file_fields):
            raise InvalidInputError(f"Upload exactly one file in the '{RESUME_FIELD}' field.")

        staged = await file_processor.stage(resume_file)
        log_id = None
        try:
            log_row = await supabase_service.log_upload(
                file_name=staged.original_name,
                file_type=staged.content_type,
                file_size_bytes=staged.size_bytes,
                job_description=job_description,
            )
            log_id = log_row.get("id") if log_row else None

            resume_text = await file_processor.extract_text(staged)
            logger.info("Extracted %d characters from %s", len(resume_text), staged.original_name)

            analysis = await cv_analyzer.analyze(resume_text, job_description)
        except ServiceError:
            await supabase_service.update_log_status(log_id, "failed")
            raise
        except Exception as e:
            logger.error("Error processing upload: %s", e, exc_info=True)
            await supabase_service.update_log_status(log_id, "failed")
            raise InternalServerError("Server error during processing.", details=str(e))
        finally:
            file_processor.remove(staged)

        await supabase_service.update_log_status(log_id, "processed")

        response = UploadResponse(
            message="Resume analyzed successfully.",
            file_name=staged.original_name,
            analysis=analysis.to_response(),
            log_id=log_id,
        )
        return JSONResponse(content=response.model_dump(by_alias=True))

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    server_settings = get_settings().server
    uvicorn.run(app, host=server_settings.host, port=server_settings.port)
