"""
Project/Phase Key - identity of a POC series and its completion dates.
"""
from dataclasses import dataclass
from typing import Optional

EMPTY_PHASE_LABEL = "(Empty Phase)"


@dataclass(frozen=True)
class ProjectPhaseKey:
    """
    (company, project, phase) identity.

    An empty phase code means the project has no sub-phase; None is
    normalised to "" so keys compare equal regardless of source.
    """

    company_code: str
    project: str
    phase_code: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'company_code', (self.company_code or "").strip())
        object.__setattr__(self, 'project', (self.project or "").strip())
        object.__setattr__(self, 'phase_code', (self.phase_code or "").strip())

    @property
    def label(self) -> str:
        """Human label, e.g. 'TOWER-A-P1' or 'TOWER-A-(Empty Phase)'."""
        return f"{self.project}-{self.phase_code or EMPTY_PHASE_LABEL}"

    def describe(self, description: Optional[str] = None) -> str:
        """Label with the allow-list description appended when there is one."""
        if description:
            return f"{self.label}: {description}"
        return self.label

    @classmethod
    def of(cls, record) -> "ProjectPhaseKey":
        """Build the key of any row carrying company_code/project/phase_code."""
        return cls(record.company_code, record.project, record.phase_code)

    def to_dict(self) -> dict:
        return {
            'company_code': self.company_code,
            'project': self.project,
            'phase_code': self.phase_code,
        }

    def __str__(self) -> str:
        return f"{self.company_code}/{self.label}"
