"""In-process contact/company store."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import fields, replace
from threading import Lock
from typing import Any

from .errors import StorageError
from .models import Company, Contact

_CONTACT_FIELDS = frozenset(item.name for item in fields(Contact)) - {"id"}


def _copy(contact: Contact) -> Contact:
    return replace(
        contact,
        alternative_emails=list(contact.alternative_emails),
        completed_searches=list(contact.completed_searches),
    )


class InMemoryContactStore:
    """Thread-safe record store with read-your-writes semantics per contact."""

    def __init__(
        self, contacts: Iterable[Contact] = (), companies: Iterable[Company] = ()
    ) -> None:
        self._lock = Lock()
        self._contacts: dict[int, Contact] = {item.id: _copy(item) for item in contacts}
        self._companies: dict[int, Company] = {item.id: item for item in companies}

    def add_contact(self, contact: Contact) -> None:
        with self._lock:
            self._contacts[contact.id] = _copy(contact)

    def get_contact(self, contact_id: int) -> Contact | None:
        with self._lock:
            contact = self._contacts.get(contact_id)
            return _copy(contact) if contact else None

    def update_contact(self, contact_id: int, patch: Mapping[str, Any]) -> Contact:
        unknown = set(patch) - _CONTACT_FIELDS
        if unknown:
            raise StorageError(f"Unknown contact fields: {', '.join(sorted(unknown))}")
        with self._lock:
            current = self._contacts.get(contact_id)
            if current is None:
                raise StorageError(f"Contact {contact_id} not found")
            updated = replace(current, **patch)
            self._contacts[contact_id] = _copy(updated)
            return _copy(updated)

    def get_company(self, company_id: int) -> Company | None:
        with self._lock:
            return self._companies.get(company_id)

    def list_contacts_by_company(self, company_id: int) -> list[Contact]:
        with self._lock:
            return [
                _copy(contact)
                for _id, contact in sorted(self._contacts.items())
                if contact.company_id == company_id
            ]
