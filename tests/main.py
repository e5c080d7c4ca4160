"""Sample application used by the endpoint tests."""

from datetime import datetime
from typing import Any, Optional

from fastapi import Depends, FastAPI
from sqlalchemy import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine, select

from fastapi_datatables import (
    ColumnRegistry,
    ColumnSpec,
    DataTable,
    DataTablesResponse,
    RequestParams,
    datatables_params,
    datatables_params_from_body,
)


class User(SQLModel, table=True):
    """User model"""

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    email: str = Field(default="")
    created_at: datetime = Field(default_factory=datetime.now)


class Post(SQLModel, table=True):
    """Post model"""

    __tablename__ = "posts"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    user_id: Optional[int] = Field(default=None, foreign_key="users.id")


class UserRow(SQLModel):
    """Serialized user row"""

    id: int
    name: str
    email: str


USERS = [
    ("Alice Smith", "alice@example.com"),
    ("Bob Jones", "bob@smith.org"),
    ("Carol White", "carol@example.com"),
    ("Eve Smith", "eve@alice.dev"),
    ("Percent 100%", "pct@example.com"),
    ("under_score", "us@example.com"),
]


def seed(session: Session, extra: int = 0) -> None:
    """Add the named users, then ``extra`` filler users."""
    users = [
        User(name=name, email=email, created_at=datetime(2024, 1, i + 1))
        for i, (name, email) in enumerate(USERS)
    ]
    users += [
        User(
            name=f"Filler {i:02d}",
            email=f"filler{i:02d}@example.net",
            created_at=datetime(2024, 2, 1 + i % 28),
        )
        for i in range(extra)
    ]
    session.add_all(users)
    session.commit()


class UsersTable(DataTable):
    registry = ColumnRegistry(
        entities={"User": User},
        view_columns=[
            ColumnSpec(display_name="name", source="User.name"),
            ColumnSpec(display_name="email", source="User.email"),
            ColumnSpec(display_name="created_at", source="User.created_at", searchable=False),
        ],
    )

    def get_raw_records(self):
        return select(User)

    def serialize_row(self, user: User) -> dict[str, Any]:
        return {"id": user.id, "name": user.name, "email": user.email}


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def get_session():
    with Session(engine) as session:
        yield session


app = FastAPI()


@app.get("/users/data", response_model=DataTablesResponse[UserRow])
def read_users(
    *,
    session: Session = Depends(get_session),
    params: RequestParams = Depends(datatables_params),
):
    return UsersTable(params).as_json(session)


@app.post("/users/data", response_model=DataTablesResponse[UserRow])
def search_users(
    *,
    session: Session = Depends(get_session),
    params: RequestParams = Depends(datatables_params_from_body),
):
    return UsersTable(params).as_json(session)
