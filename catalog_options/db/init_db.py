import logging
from typing import Optional
from sqlalchemy.engine import Engine
from catalog_options.db.base import Base
from catalog_options.db.session import engine as default_engine

logger = logging.getLogger(__name__)

def init_db(bind: Optional[Engine] = None) -> None:
    """Create any missing tables; migrations are handled by Alembic."""
    target = bind if bind is not None else default_engine
    Base.metadata.create_all(bind=target)
    logger.debug("database schema ready on %s", target.url.render_as_string(hide_password=True))
