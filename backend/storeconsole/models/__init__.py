# Import models here so Alembic can discover metadata.
from storeconsole.models.user import User  # noqa: F401
from storeconsole.models.store import Store  # noqa: F401
from storeconsole.models.store_membership import StoreMembership  # noqa: F401
