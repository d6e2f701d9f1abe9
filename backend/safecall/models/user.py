"""User ORM: the single table behind the /users contracts.

Invariants:
    - id is an autoincrementing integer primary key (serial in PostgreSQL)
    - name is non-nullable text; emptiness is rejected by the input schema, not the DB
"""

from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from safecall.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}
