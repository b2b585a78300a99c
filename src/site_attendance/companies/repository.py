from __future__ import annotations

from typing import Optional, Protocol

from .model import Company


class CompanyRepository(Protocol):
    def get(self, company_id: Optional[str]) -> Optional[Company]:
        raise NotImplementedError

    def exists(self, company_id: str) -> bool:
        raise NotImplementedError

    def add(self, company: Company) -> None:
        raise NotImplementedError
