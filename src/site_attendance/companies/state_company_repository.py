from __future__ import annotations

from typing import Optional

from ..storage.state import AppState
from .model import Company
from .repository import CompanyRepository


class StateCompanyRepository(CompanyRepository):
    def __init__(self, state: AppState):
        self._state = state

    def get(self, company_id: Optional[str]) -> Optional[Company]:
        if not company_id:
            return None
        return self._state.companies.get(company_id)

    def exists(self, company_id: str) -> bool:
        return company_id in self._state.companies

    def add(self, company: Company) -> None:
        self._state.companies[company.company_id] = company
