"""Reference data models: clients, projects, tasks and users.

These records are read-only lookups for the engine. They only provide the
names, client linkage and roles shown in billing views.
"""

from typing import Optional

from pydantic import Field, field_validator

from billing_engine.models.base import BaseDataModel


class Client(BaseDataModel):
    """Represents a client that projects are billed to.

    Example:
        >>> Client(id="c-1", name="Acme Corp").name
        'Acme Corp'
    """

    id: str = Field(..., min_length=1, description="Client identifier")
    name: str = Field(..., min_length=1, description="Client name")


class Project(BaseDataModel):
    """Represents a project.

    Attributes:
        id: Unique project identifier
        name: Project name
        client_id: Client the project is billed to, if any

    Example:
        >>> project = Project(id="p-1", name="Website Redesign", client_id="c-1")
        >>> project.name
        'Website Redesign'
    """

    id: str = Field(..., min_length=1, description="Project identifier")
    name: str = Field(..., min_length=1, description="Project name")
    client_id: Optional[str] = Field(None, description="Owning client")

    @field_validator("name")
    @classmethod
    def validate_not_empty(cls, v: str, info) -> str:
        """Validate that string fields are not empty or whitespace only.

        Raises:
            ValueError: If the value is empty or whitespace only
        """
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty or whitespace")
        return v.strip()

    @field_validator("client_id", mode="before")
    @classmethod
    def blank_client_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None


class Task(BaseDataModel):
    """A named task within a project."""

    id: str = Field(..., min_length=1, description="Task identifier")
    project_id: str = Field(..., min_length=1, description="Owning project")
    name: str = Field(..., min_length=1, description="Task name")


class User(BaseDataModel):
    """A resource who records time.

    Example:
        >>> User(id="u-1", full_name="Jane Smith", role="lead").display_name
        'Jane Smith'
    """

    id: str = Field(..., min_length=1, description="User identifier")
    full_name: Optional[str] = Field(None, description="Full display name")
    first_name: Optional[str] = Field(None, description="Given name")
    last_name: Optional[str] = Field(None, description="Family name")
    email: Optional[str] = Field(None, description="Email address")
    role: str = Field("employee", description="Organisational role")

    @property
    def display_name(self) -> str:
        """Full name, else first + last name, else ``Unknown User``."""
        if self.full_name and self.full_name.strip():
            return self.full_name.strip()
        joined = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return joined or "Unknown User"
