from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, HTTPException, status

from app.core.config import settings

COMPANY_ID_HEADER = settings.company_id_header


@dataclass(slots=True)
class CompanyContext:
    company_id: str | None = None

    def owns(self, company_id: str | None) -> bool:
        # Unscoped callers see every company's rows
        return self.company_id is None or company_id == self.company_id


def get_company_context(
    company_id: str | None = Header(default=None, alias=COMPANY_ID_HEADER),
) -> CompanyContext:
    if company_id is None:
        return CompanyContext()
    company_id = company_id.strip()
    if not company_id or len(company_id) > 64:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_company_id")
    return CompanyContext(company_id=company_id)
