from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class ArtifactInfo(BaseModel):
    """Package metadata as known by the risk API."""
    package_id: str | None = Field(alias='packageId', default=None)
    legacy_package_id: str | None = Field(
        alias='legacyPackageId', default=None,
    )
    name: str | None = None
    version: str | None = None
    type: str | None = None
    release_date: str | None = Field(alias='releaseDate', default=None)
    description: str | None = None
    project_url: str | None = Field(alias='projectUrl', default=None)
    project_home_page: str | None = Field(
        alias='projectHomePage', default=None,
    )

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    @property
    def id(self) -> str | None:
        return self.legacy_package_id
