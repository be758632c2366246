import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from fellowship_backend.api.api_builder import CrudRouter
from fellowship_backend.api.cascading import cascading_router
from fellowship_backend.api.error_handlers import register_exception_handlers
from fellowship_backend.api.permissions import permissions_router
from fellowship_backend.api.role_permissions import role_permissions_router
from fellowship_backend.api.roles import roles_router
from fellowship_backend.api.scope import scope_router
from fellowship_backend.api.user_roles import user_roles_router
from fellowship_backend.database import get_db, get_engine
from fellowship_backend.interface.alumni_small_groups import AlumniSmallGroupInterface
from fellowship_backend.interface.events import EventInterface
from fellowship_backend.interface.members import MemberInterface
from fellowship_backend.interface.regions import RegionInterface
from fellowship_backend.interface.small_groups import SmallGroupInterface
from fellowship_backend.interface.tokens import encrypt_api_key
from fellowship_backend.interface.universities import UniversityInterface
from fellowship_backend.interface.users import UserInterface
from fellowship_backend.model.auth import User
from fellowship_backend.model.base import Base
from fellowship_backend.model.role import Role, UserRole
from fellowship_backend.permissions.role_setup import ensure_system_roles
from fellowship_backend.settings import settings

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

async def init_admin_user(db: Session):

    email = settings.ADMIN_EMAIL
    password = settings.ADMIN_PASSWORD

    if not email or not password:
        logger.warning("ADMIN_EMAIL/ADMIN_PASSWORD not set, no initial superadmin created")
        return

    admin = db.query(User).filter(User.email == email).first()

    if admin != None:
        return

    admin_user = User(
        name="Administrator",
        email=email,
        password=encrypt_api_key(password)
    )
    db.add(admin_user)
    db.commit()
    db.refresh(admin_user)

    system_role = db.query(Role).filter(Role.level == "System", Role.is_system == True).first()

    db.add(
        UserRole(
            user_id=admin_user.id,
            scope="superadmin",
            role_id=system_role.id if system_role else None
        )
    )
    db.commit()
    logger.info(f"Created initial superadmin {email}")

async def startup_logic():

    Base.metadata.create_all(get_engine())

    with next(get_db()) as db:
        ensure_system_roles(db)
        await init_admin_user(db)

@asynccontextmanager
async def lifespan(app: FastAPI):

    if settings.DEBUG_MODE == "production":
        await startup_logic()

    yield

app = FastAPI(title="Fellowship Backend", lifespan=lifespan)

origins = [
    "*"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count"],
)

register_exception_handlers(app)

CrudRouter(RegionInterface).register_routes(app)
CrudRouter(UniversityInterface).register_routes(app)
CrudRouter(SmallGroupInterface).register_routes(app)
CrudRouter(AlumniSmallGroupInterface).register_routes(app)
CrudRouter(MemberInterface).register_routes(app)
CrudRouter(EventInterface).register_routes(app)
CrudRouter(UserInterface).register_routes(app)

app.include_router(
    roles_router,
    prefix="/roles",
    tags=["roles"]
)

app.include_router(
    permissions_router,
    prefix="/permissions",
    tags=["permissions"]
)

app.include_router(
    role_permissions_router,
    prefix="/role-permissions",
    tags=["roles", "permissions"]
)

app.include_router(
    user_roles_router,
    prefix="/user-roles",
    tags=["user", "roles"]
)

app.include_router(
    cascading_router,
    prefix="/cascading",
    tags=["cascading"]
)

app.include_router(
    scope_router,
    prefix="/scope",
    tags=["scope", "me"]
)

@app.head("/", status_code=204)
def get_status_head():
    return
