"""FastAPI backend for invoice scanning"""
import base64
import logging
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, File, Header, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import config, extraction
from .access import AccessDeniedError, check_admin, check_invoice_access
from .database import (
    ensure_user_profile,
    get_invoice,
    get_user_profile,
    init_database,
    list_invoices,
    list_users,
    set_user_role
)
from .models import SaveErrorCode, UserRole
from .orchestrator import process_upload
from .persistence import save_invoice
from .session import require_acting_user

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(title="FaturaScan", version="0.1.0")

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize database on startup
db_conn = None

ALLOWED_IMAGE_TYPES = [
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/gif",
    "image/webp"
]

SAVE_STATUS_CODES = {
    None: 201,
    SaveErrorCode.MISSING_IDENTITY: 401,
    SaveErrorCode.STORE_UNAVAILABLE: 503,
    SaveErrorCode.INVALID_PAYLOAD: 422,
    SaveErrorCode.WRITE_FAILED: 500,
}


class ProcessRequest(BaseModel):
    photoDataUri: Optional[str] = None


class RoleUpdate(BaseModel):
    role: UserRole


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup"""
    global db_conn
    db_conn = init_database()
    logger.info("Database initialized at %s", config.DB_PATH)


@app.on_event("shutdown")
async def shutdown_event():
    """Close database connection on shutdown"""
    global db_conn
    if db_conn:
        db_conn.close()
        db_conn = None


def _require_store():
    if db_conn is None:
        raise HTTPException(status_code=503, detail="Invoice store is unavailable.")
    return db_conn


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    status = {
        "status": "ok",
        "ollama_available": False,
        "gemini_available": bool(extraction.GEMINI_API_KEY),
        "store_available": db_conn is not None
    }

    # Check Ollama availability
    try:
        import ollama
        models = ollama.list()
        status["ollama_available"] = any(
            config.OLLAMA_MODEL in (model.get("model") or model.get("name") or "")
            for model in models.get("models", [])
        )
    except Exception:
        logger.debug("Ollama not reachable", exc_info=True)

    return status


@app.post("/api/invoices/process")
async def process_endpoint(request: ProcessRequest):
    """Run AI extraction and validation on an image data URI"""
    result = await process_upload(request.photoDataUri)
    return result.model_dump()


@app.post("/api/invoices/upload")
async def upload_endpoint(file: UploadFile = File(...)):
    """Extract data from an uploaded invoice photo"""
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}"
        )

    file_bytes = await file.read()

    if len(file_bytes) > config.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=400,
            detail="File size exceeds 10MB limit"
        )

    encoded = base64.b64encode(file_bytes).decode("utf-8")
    result = await process_upload(f"data:{file.content_type};base64,{encoded}")

    response = result.model_dump()
    response["imageFileName"] = file.filename
    return response


@app.post("/api/invoices")
async def save_invoice_endpoint(
    invoice: Dict[str, Any] = Body(...),
    x_user_id: Optional[str] = Header(None)
):
    """Persist a reviewed invoice for the acting user"""
    result = save_invoice(db_conn, invoice, x_user_id)
    return JSONResponse(
        status_code=SAVE_STATUS_CODES[result.errorCode],
        content=result.model_dump(mode="json", exclude_none=True),
    )


@app.get("/api/invoices")
async def list_invoices_endpoint(
    user_id: str = Depends(require_acting_user),
    offset: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000)
):
    """List the acting user's invoices, newest first"""
    invoices, total = list_invoices(_require_store(), user_id, offset=offset, limit=limit)

    return {
        "invoices": [invoice.model_dump(mode="json") for invoice in invoices],
        "total": total,
        "offset": offset,
        "limit": limit
    }


@app.get("/api/invoices/{invoice_id}")
async def get_invoice_endpoint(invoice_id: str, user_id: str = Depends(require_acting_user)):
    """Get single invoice by ID"""
    conn = _require_store()

    invoice = get_invoice(conn, invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")

    try:
        check_invoice_access(conn, user_id, invoice)
    except AccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))

    return invoice.model_dump(mode="json")


@app.put("/api/users/me")
async def ensure_profile_endpoint(
    user_id: str = Depends(require_acting_user),
    x_user_email: Optional[str] = Header(None),
    x_user_display_name: Optional[str] = Header(None)
):
    """Return the caller's profile, creating it on first access"""
    profile = ensure_user_profile(
        _require_store(), user_id, email=x_user_email, display_name=x_user_display_name
    )
    return profile.model_dump(mode="json")


@app.get("/api/admin/users")
async def list_users_endpoint(user_id: str = Depends(require_acting_user)):
    """List all user profiles (administrators only)"""
    conn = _require_store()
    try:
        check_admin(conn, user_id)
    except AccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))

    return {"users": [profile.model_dump(mode="json") for profile in list_users(conn)]}


@app.patch("/api/admin/users/{uid}/role")
async def set_role_endpoint(
    uid: str,
    update: RoleUpdate,
    user_id: str = Depends(require_acting_user)
):
    """Change a user's role (administrators only)"""
    conn = _require_store()
    try:
        check_admin(conn, user_id)
    except AccessDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))

    if not get_user_profile(conn, uid):
        raise HTTPException(status_code=404, detail="User not found")

    profile = set_user_role(conn, uid, update.role)
    logger.info("User %s set role of %s to %s", user_id, uid, update.role.value)
    return profile.model_dump(mode="json")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
