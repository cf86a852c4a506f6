from sannu.db.database import Base

# Import all models so Alembic and create_all can discover them
from .tenant_application import TenantApplication
from .tenant import Tenant
from .user import User
from .user_tenant_role import UserTenantRole
from .project import Project
from .product import Product
from .contribution import Contribution
from .project_invitation import ProjectInvitation
from .audit_log import AuditLog
from .user_session import UserSession
from .password_reset_token import PasswordResetToken
