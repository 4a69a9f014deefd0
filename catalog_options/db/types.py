from sqlalchemy import Column, DateTime, Numeric, func


def Money(**kwargs) -> Column:
    """Exact decimal money column; four places so adjustments like 10.005 survive storage."""
    return Column(Numeric(12, 4, asdecimal=True), **kwargs)


class TimestampMixin:
    """Common audit columns for catalog tables."""

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())
