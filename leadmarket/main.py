import logging
import os
from contextlib import asynccontextmanager
from typing import List

from fastapi import BackgroundTasks, Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy.orm import Session

from . import config, crud, models, notify, runners, schemas
from .access import get_current_user, require_role
from .auth import create_access_token
from .db import EntityStore, get_db
from .errors import AuthError, Forbidden, NotFound, ValidationFailed
from .linkage import unlinked_business_users
from .uploads import MAX_FILES, save_uploads

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = EntityStore(config.get_settings().database_url)
    store.connect()
    app.state.store = store
    os.makedirs(config.get_settings().upload_dir, exist_ok=True)
    logger.info("store connected")
    try:
        yield
    finally:
        store.disconnect()
        logger.info("store disconnected")


app = FastAPI(title="Leadmarket API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------- Error mapping --------------------

async def _validation_failed(request: Request, exc: ValidationFailed):
    body = {"detail": exc.message}
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(status_code=400, content=body)


async def _not_found(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc) or "Not found"})


async def _forbidden(request: Request, exc: Forbidden):
    return JSONResponse(status_code=403, content={"detail": str(exc) or "Forbidden"})


async def _auth_error(request: Request, exc: AuthError):
    return JSONResponse(status_code=401, content={"detail": str(exc)})


async def _server_error(request: Request, exc: Exception):
    # internals stay in the server log
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Server error"})


app.add_exception_handler(ValidationFailed, _validation_failed)
app.add_exception_handler(NotFound, _not_found)
app.add_exception_handler(Forbidden, _forbidden)
app.add_exception_handler(AuthError, _auth_error)
app.add_exception_handler(Exception, _server_error)


def user_payload(user: models.User) -> dict:
    return schemas.UserRead.model_validate(user).model_dump(by_alias=True)


@app.get("/health")
async def health():
    return {"status": "ok"}


# -------------------- Auth --------------------

@app.post("/api/auth/register")
async def register(req: schemas.RegisterRequest, db: Session = Depends(get_db)):
    user, business = crud.register_user(db, req)
    if business is not None:
        return {"message": "Business registered", "businessId": business.id}
    return {"message": "User registered", "userId": user.id}


@app.post("/api/auth/login", response_model=schemas.LoginResponse)
async def login(req: schemas.LoginRequest, db: Session = Depends(get_db)):
    user = crud.authenticate(db, req.email, req.password)
    token = create_access_token(user.id, user.role, email=user.email, business_id=user.business_id)
    return {"token": token, "user": user_payload(user)}


@app.put("/api/auth/profile")
async def update_profile(updates: schemas.ProfileUpdate, db: Session = Depends(get_db),
                         current_user: models.User = Depends(get_current_user)):
    user = crud.update_profile(db, current_user, updates)
    return {"user": user_payload(user)}


@app.post("/api/admin/seed")
async def seed_admin(req: schemas.SeedAdminRequest, db: Session = Depends(get_db)):
    """Bootstrap an admin. Only enabled when SEED_ADMIN_KEY is set and matches ``key``."""
    seed_key = config.get_settings().seed_admin_key
    if not seed_key:
        raise HTTPException(status_code=403, detail="Seeding disabled")
    if not req.key or req.key != seed_key:
        raise HTTPException(status_code=403, detail="Invalid seed key")
    admin = crud.seed_admin(db, req.email, req.password, req.name)
    token = create_access_token(admin.id, admin.role, email=admin.email)
    return {"message": "Admin created", "token": token, "user": user_payload(admin)}


# -------------------- Leads --------------------

@app.post("/api/leads")
async def create_lead(payload: schemas.LeadCreate, background_tasks: BackgroundTasks,
                      db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    lead = crud.create_lead(db, current_user, payload)
    background_tasks.add_task(notify.send_lead_notification, notify.lead_summary(lead))
    return {"message": "Lead sent", "lead": schemas.LeadRead.model_validate(lead).model_dump(by_alias=True, mode="json")}


@app.get("/api/leads", response_model=List[schemas.LeadRead])
async def list_leads(db: Session = Depends(get_db), current_user: models.User = Depends(get_current_user)):
    leads = [schemas.LeadRead.model_validate(ld) for ld in crud.list_leads(db, current_user)]
    if current_user.role == models.ADMIN:
        names = crud.business_names(db, (ld.business_id for ld in leads))
        leads = [ld.model_copy(update={"business_name": names.get(ld.business_id)}) for ld in leads]
    return leads


# -------------------- Public businesses --------------------

@app.get("/api/businesses", response_model=List[schemas.BusinessPublic])
async def list_businesses(db: Session = Depends(get_db)):
    return crud.list_businesses(db)


@app.get("/api/businesses/{business_id}", response_model=schemas.BusinessPublic)
async def get_business(business_id: str, db: Session = Depends(get_db)):
    return crud.get_business(db, business_id)


@app.get("/api/businesses/{business_id}/products", response_model=List[schemas.ProductPublic])
async def list_business_products(business_id: str, db: Session = Depends(get_db)):
    return crud.list_business_products(db, business_id)


# -------------------- Products (business owners / admin) --------------------

business_or_admin = require_role(models.BUSINESS, models.ADMIN)


@app.post("/api/business/products")
async def create_product(payload: schemas.ProductPayload, db: Session = Depends(get_db),
                         current_user: models.User = Depends(business_or_admin)):
    product = crud.create_product(db, current_user, payload)
    return {"product": schemas.ProductRead.model_validate(product).model_dump(by_alias=True, mode="json")}


@app.get("/api/business/products", response_model=List[schemas.ProductRead])
async def list_products(db: Session = Depends(get_db), current_user: models.User = Depends(business_or_admin)):
    return crud.list_products(db, current_user)


@app.post("/api/business/products/upload")
async def upload_images(request: Request, images: List[UploadFile] = File(...),
                        current_user: models.User = Depends(business_or_admin)):
    if len(images) > MAX_FILES:
        raise HTTPException(status_code=400, detail=f"Too many files. Maximum {MAX_FILES} files per request.")
    names = save_uploads(images, config.get_settings().upload_dir)
    base = str(request.base_url)
    return {"urls": [f"{base}uploads/{name}" for name in names]}


@app.get("/uploads/{name}")
async def uploaded_file(name: str):
    # same directory save_uploads writes to
    path = os.path.join(config.get_settings().upload_dir, os.path.basename(name))
    if not os.path.isfile(path):
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(path)


@app.get("/api/business/products/{product_id}", response_model=schemas.ProductRead)
async def get_product(product_id: str, db: Session = Depends(get_db),
                      current_user: models.User = Depends(get_current_user)):
    return crud.get_product(db, current_user, product_id)


@app.put("/api/business/products/{product_id}", response_model=schemas.ProductRead)
async def update_product(product_id: str, payload: schemas.ProductPayload, db: Session = Depends(get_db),
                         current_user: models.User = Depends(get_current_user)):
    return crud.update_product(db, current_user, product_id, payload)


@app.delete("/api/business/products/{product_id}")
async def delete_product(product_id: str, db: Session = Depends(get_db),
                         current_user: models.User = Depends(get_current_user)):
    crud.delete_product(db, current_user, product_id)
    return {"message": "Deleted"}


# -------------------- Admin --------------------

admin_only = require_role(models.ADMIN)


@app.get("/api/admin/businesses", response_model=List[schemas.BusinessRead])
async def admin_list_businesses(db: Session = Depends(get_db), current_user: models.User = Depends(admin_only)):
    return crud.list_businesses(db)


@app.put("/api/admin/businesses/{business_id}", response_model=schemas.BusinessRead)
async def admin_update_business(business_id: str, updates: schemas.BusinessUpdate, db: Session = Depends(get_db),
                                current_user: models.User = Depends(admin_only)):
    return crud.update_business(db, business_id, updates)


@app.delete("/api/admin/businesses/{business_id}")
async def admin_delete_business(business_id: str, db: Session = Depends(get_db),
                                current_user: models.User = Depends(admin_only)):
    crud.delete_business(db, business_id)
    return {"message": "Deleted"}


@app.get("/api/admin/users-without-business", response_model=List[schemas.UnlinkedUserRead])
async def admin_users_without_business(db: Session = Depends(get_db),
                                       current_user: models.User = Depends(admin_only)):
    return unlinked_business_users(db)


@app.post("/api/admin/migrate-users")
async def admin_migrate_users(db: Session = Depends(get_db), current_user: models.User = Depends(admin_only)):
    return runners.migrate_users_to_businesses(db).as_dict()


@app.post("/api/admin/cleanup-users")
async def admin_cleanup_users(db: Session = Depends(get_db), current_user: models.User = Depends(admin_only)):
    return runners.cleanup_user_business_fields(db).as_dict()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 4000)))
