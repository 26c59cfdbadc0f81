import logging
from typing import Dict, Iterable, List, Optional

from errors import RecordNotFound, ValidationError
from exports import export_to_csv, export_to_xlsx
from schemas import AdminRegistrationResponse, RegistrationRecord, RegistrationStats, RegistrationStatusEnum

logger = logging.getLogger(__name__)

GIFT_ELIGIBLE_LIMIT = 100


def matches_search(record: RegistrationRecord, search_term: Optional[str]) -> bool:
    term = str(search_term or "").lower()
    if not term:
        return True
    return (
        term in record.name.lower()
        or term in record.mobile.lower()
        or term in record.registration_number.lower()
        or term in record.address.lower()
    )


def gift_ranks(ordered_records: Iterable[RegistrationRecord]) -> Dict[int, int]:
    return {record.id: index for index, record in enumerate(ordered_records)}


class RegistrationListing:
    def __init__(self, store, gift_limit: int = GIFT_ELIGIBLE_LIMIT):
        self.store = store
        self.gift_limit = gift_limit
        self.registrations: List[RegistrationRecord] = []
        self.visible: List[RegistrationRecord] = []
        self.search_term = ""
        self._ranks: Dict[int, int] = {}

    def _refresh(self) -> None:
        self._ranks = gift_ranks(self.registrations)
        self.visible = [record for record in self.registrations if matches_search(record, self.search_term)]

    def load(self) -> List[RegistrationRecord]:
        # A failed read raises before the loaded set is touched.
        records = self.store.list_all()
        self.registrations = list(records)
        self._refresh()
        return self.visible

    def filter(self, search_term: Optional[str]) -> List[RegistrationRecord]:
        self.search_term = str(search_term or "")
        self._refresh()
        return self.visible

    def gift_rank(self, record: RegistrationRecord) -> Optional[int]:
        return self._ranks.get(record.id)

    def is_gift_eligible(self, record: RegistrationRecord) -> bool:
        rank = self.gift_rank(record)
        return rank is not None and rank < self.gift_limit

    def ranked(self, records: Optional[Iterable[RegistrationRecord]] = None) -> List[AdminRegistrationResponse]:
        rows = self.visible if records is None else records
        return [
            AdminRegistrationResponse(
                **record.model_dump(),
                gift_rank=self.gift_rank(record),
                gift_eligible=self.is_gift_eligible(record),
            )
            for record in rows
        ]

    def stats(self) -> RegistrationStats:
        total = len(self.registrations)
        return RegistrationStats(
            total=total,
            gift_eligible=min(total, self.gift_limit),
            male=sum(1 for record in self.registrations if record.gender == "male"),
            female=sum(1 for record in self.registrations if record.gender == "female"),
        )

    def export_csv(self, records: Optional[Iterable[RegistrationRecord]] = None) -> bytes:
        return export_to_csv(self.visible if records is None else records)

    def export_xlsx(self, records: Optional[Iterable[RegistrationRecord]] = None) -> bytes:
        return export_to_xlsx(self.visible if records is None else records)

    def find(self, storage_key: int) -> RegistrationRecord:
        for record in self.registrations:
            if record.id == storage_key:
                return record
        raise RecordNotFound(f"Registration {storage_key} not found")

    def set_status(self, record: RegistrationRecord, new_status) -> RegistrationRecord:
        try:
            status_value = RegistrationStatusEnum(getattr(new_status, "value", new_status))
        except ValueError:
            raise ValidationError(f"Invalid status: {new_status}", reason="invalid-status")

        local = self.find(record.id)
        self.store.update(record.id, {"status": status_value.value})
        local.status = status_value
        if record is not local:
            record.status = status_value
        logger.info("Registration %s status set to %s", local.registration_number, status_value.value)
        return local

    def delete_record(self, record: RegistrationRecord, confirmed: bool = False) -> None:
        if not confirmed:
            raise ValidationError(
                f"Please confirm deletion of the registration for {record.name}",
                reason="confirmation-required",
            )
        self.store.remove(record.id)
        self.registrations = [item for item in self.registrations if item.id != record.id]
        self._refresh()
        logger.info("Registration %s removed from listing", record.registration_number)
