from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator


class VulnerabilitiesAggregation(BaseModel):
    vulnerabilities_count: int = Field(alias='vulnerabilitiesCount', default=0)
    max_risk_severity: str = Field(alias='maxRiskSeverity', default='None')
    max_risk_score: float = Field(alias='maxRiskScore', default=0.0)
    critical_risk_count: int = Field(alias='criticalRiskCount', default=0)
    high_risk_count: int = Field(alias='highRiskCount', default=0)
    medium_risk_count: int = Field(alias='mediumRiskCount', default=0)
    low_risk_count: int = Field(alias='lowRiskCount', default=0)

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    @field_validator('max_risk_severity', mode='before')
    @classmethod
    def default_severity(cls, v: Any) -> str:
        return v or 'None'


class RiskAggregation(BaseModel):
    """Aggregated risks of one package version plus its identified licenses."""
    vulnerabilities: VulnerabilitiesAggregation = Field(
        alias='packageVulnerabilitiesAggregation',
    )
    licenses: list[str] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class Vulnerability(BaseModel):
    id: str
    cwe: str | None = None
    description: str | None = None
    score: float | None = None
    severity: str | None = None
    publish_date: str | None = Field(alias='publishDate', default=None)
    references: list[Any] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    @field_validator('references', mode='before')
    @classmethod
    def default_references(cls, v: Any) -> list[Any]:
        return v or []


class LicenseName(BaseModel):
    name: str | None = None

    model_config = ConfigDict(extra='ignore')


class IdentifiedLicense(BaseModel):
    license: LicenseName | None = None

    model_config = ConfigDict(extra='ignore')


class PackageLicenses(BaseModel):
    identified_licenses: list[IdentifiedLicense] | None = Field(
        alias='identifiedLicenses', default=None,
    )

    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    @property
    def names(self) -> list[str]:
        return [
            item.license.name
            for item in self.identified_licenses or []
            if item.license is not None and item.license.name
        ]
