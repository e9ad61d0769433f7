import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Iterator, Optional, Union

from .config import Settings, settings as default_settings
from .exceptions import (
    AlreadyCheckedInError,
    AlreadyVotedError,
    BalanceOverflowError,
    ConcurrentModificationError,
    InsufficientStakeError,
    InvalidParametersError,
    LocationMismatchError,
    NotAdministratorError,
    NotOwnerError,
    OperationsPausedError,
    SelfCheckInForbiddenError,
    SelfVoteForbiddenError,
    TourAlreadyVerifiedError,
    TourInactiveError,
    TourNotFoundError,
    TourNotVerifiedError,
)
from .models import CheckIn, CheckInStatus, EngineConfig, EventType, Tour
from .notifications import InMemoryNotifier, Notifier, make_event
from .policy import AccessPolicy, StaticAccessPolicy

logger = logging.getLogger(__name__)


class InMemoryStorage:
    """The four ledgers plus the locks that make each operation atomic.

    Tour records are replaced wholesale on every write, so an unlocked
    reader always sees a consistent snapshot of a single tour.
    """

    def __init__(self):
        self.tours: dict[int, dict] = {}
        self.votes: set[tuple[int, str]] = set()
        self.check_in_index: set[tuple[int, str]] = set()
        self.check_ins: dict[int, list[dict]] = {}
        self.balances: dict[str, int] = {}
        self.next_tour_id = 0

        self.registry_lock = threading.Lock()
        self.balance_lock = threading.Lock()
        self._tour_locks: dict[int, threading.Lock] = {}
        self._held = threading.local()

    def add_tour(self, data: dict) -> int:
        with self.registry_lock:
            tour_id = self.next_tour_id
            self.next_tour_id += 1
            self.tours[tour_id] = {**data, "id": tour_id}
            self.check_ins[tour_id] = []
            self._tour_locks[tour_id] = threading.Lock()
        return tour_id

    @contextmanager
    def lock_tour(self, tour_id: int) -> Iterator[dict]:
        """Hold the tour's lock and yield its current record."""
        with self.registry_lock:
            lock = self._tour_locks.get(tour_id)
        if lock is None:
            raise TourNotFoundError(f"Tour {tour_id} not found")

        held = self._held_tours()
        if tour_id in held:
            raise ConcurrentModificationError(f"Tour {tour_id} is already being modified")

        with lock:
            held.add(tour_id)
            try:
                yield self.tours[tour_id]
            finally:
                held.discard(tour_id)

    def _held_tours(self) -> set[int]:
        if not hasattr(self._held, "tours"):
            self._held.tours = set()
        return self._held.tours


class TourService:
    def __init__(
        self,
        storage: Optional[InMemoryStorage] = None,
        settings: Optional[Settings] = None,
        policy: Optional[AccessPolicy] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.storage = storage or InMemoryStorage()
        self.settings = settings or default_settings
        self.policy = policy or StaticAccessPolicy(self.settings.administrators)
        self.notifier = notifier or InMemoryNotifier()

        self.creation_points = self.settings.CREATION_POINTS
        self.check_in_points = self.settings.CHECK_IN_POINTS
        self.min_vote_stake = self.settings.MIN_VOTE_STAKE
        self.max_balance = self.settings.MAX_BALANCE
        self._vote_threshold = self.settings.VOTE_THRESHOLD

    # Tour registry

    def create_tour(self, owner: str, image_ref: str, location: str) -> Tour:
        self._require_enabled()
        if not image_ref or not location:
            raise InvalidParametersError("Image reference and location are required")

        now = datetime.now(timezone.utc)
        tour_id = self.storage.add_tour({
            "owner": owner,
            "image_ref": image_ref,
            "location": location,
            "upvotes": 0,
            "verified": False,
            "active": True,
            "created_at": now,
            "updated_at": None,
            "verified_at": None,
        })

        with self.storage.lock_tour(tour_id) as data:
            self._emit(EventType.TOUR_CREATED, tour_id, owner=owner, location=location)
            logger.info("Tour %s created by %s", tour_id, owner)
            return Tour(**data)

    def update_tour(self, tour_id: int, caller: str, image_ref: str, location: str) -> Tour:
        self._require_enabled()
        with self.storage.lock_tour(tour_id) as data:
            if data["verified"]:
                raise TourAlreadyVerifiedError(f"Tour {tour_id} is verified and can no longer be updated")
            if data["owner"] != caller:
                raise NotOwnerError(f"{caller} does not own tour {tour_id}")
            if not image_ref or not location:
                raise InvalidParametersError("Image reference and location are required")

            data = self._write_tour(tour_id, data, image_ref=image_ref, location=location,
                                    updated_at=datetime.now(timezone.utc))
            self._emit(EventType.TOUR_UPDATED, tour_id, image_ref=image_ref, location=location)
            logger.info("Tour %s updated", tour_id)
            return Tour(**data)

    def deactivate_tour(self, tour_id: int, caller: str) -> Tour:
        self._require_enabled()
        with self.storage.lock_tour(tour_id) as data:
            if data["owner"] != caller:
                raise NotOwnerError(f"{caller} does not own tour {tour_id}")

            # Deactivating an inactive tour is accepted and re-announced
            if data["active"]:
                data = self._write_tour(tour_id, data, active=False,
                                        updated_at=datetime.now(timezone.utc))
            self._emit(EventType.TOUR_DEACTIVATED, tour_id, owner=caller)
            logger.info("Tour %s deactivated", tour_id)
            return Tour(**data)

    def get_tour(self, tour_id: int) -> Tour:
        data = self.storage.tours.get(tour_id)
        if not data:
            raise TourNotFoundError(f"Tour {tour_id} not found")
        return Tour(**data)

    def tour_count(self) -> int:
        return self.storage.next_tour_id

    # Vote ledger

    def upvote(self, tour_id: int, voter: str, stake: Union[Decimal, int]) -> Tour:
        self._require_enabled()
        with self.storage.lock_tour(tour_id) as data:
            if not data["active"]:
                raise TourInactiveError(f"Tour {tour_id} is inactive")
            if data["owner"] == voter:
                raise SelfVoteForbiddenError("Owners cannot vote on their own tour")
            if (tour_id, voter) in self.storage.votes:
                raise AlreadyVotedError(f"{voter} already voted on tour {tour_id}")
            if self._parse_stake(stake) < self.min_vote_stake:
                raise InsufficientStakeError(
                    f"Stake {stake} is below the minimum of {self.min_vote_stake}"
                )

            upvotes = data["upvotes"] + 1
            changes = {"upvotes": upvotes}
            # Latched: later threshold changes never revisit this flag
            if not data["verified"] and upvotes >= self._vote_threshold:
                changes.update(verified=True, verified_at=datetime.now(timezone.utc))

            self.storage.votes.add((tour_id, voter))
            data = self._write_tour(tour_id, data, **changes)

            self._emit(EventType.TOUR_UPVOTED, tour_id, voter=voter,
                       upvotes=upvotes, verified=data["verified"])
            if "verified" in changes:
                logger.info("Tour %s verified at %s votes", tour_id, upvotes)
            return Tour(**data)

    def has_voted(self, tour_id: int, voter: str) -> bool:
        self.get_tour(tour_id)
        return (tour_id, voter) in self.storage.votes

    # Check-in ledger

    def check_in(self, tour_id: int, participant: str, image_ref: str, location: str) -> CheckIn:
        self._require_enabled()
        with self.storage.lock_tour(tour_id) as data:
            if not data["active"]:
                raise TourInactiveError(f"Tour {tour_id} is inactive")
            if not data["verified"]:
                raise TourNotVerifiedError(f"Tour {tour_id} is not verified yet")
            if data["owner"] == participant:
                raise SelfCheckInForbiddenError("Owners cannot check in to their own tour")
            if (tour_id, participant) in self.storage.check_in_index:
                raise AlreadyCheckedInError(f"{participant} already checked in to tour {tour_id}")
            if not image_ref:
                raise InvalidParametersError("Image reference is required")
            if location != data["location"]:
                raise LocationMismatchError("Claimed location does not match the tour location")

            creator = data["owner"]
            with self.storage.balance_lock:
                self._check_headroom(creator, self.creation_points)
                self._check_headroom(participant, self.check_in_points)

                record = {
                    "tour_id": tour_id,
                    "participant": participant,
                    "image_ref": image_ref,
                    "location": location,
                    "status": CheckInStatus.CONFIRMED,
                    "checked_in_at": datetime.now(timezone.utc),
                }
                self.storage.check_in_index.add((tour_id, participant))
                self.storage.check_ins[tour_id].append(record)
                self._credit(creator, self.creation_points)
                self._credit(participant, self.check_in_points)

            self._emit(EventType.CHECK_IN_CONFIRMED, tour_id, participant=participant,
                       image_ref=image_ref, location=location)
            self._emit(EventType.POINTS_AWARDED, tour_id, participant=creator,
                       points=self.creation_points, reason="creation")
            self._emit(EventType.POINTS_AWARDED, tour_id, participant=participant,
                       points=self.check_in_points, reason="check_in")
            logger.info("Check-in by %s confirmed for tour %s", participant, tour_id)
            return CheckIn(**record)

    def list_check_ins(self, tour_id: int) -> list[CheckIn]:
        self.get_tour(tour_id)
        return [CheckIn(**c) for c in list(self.storage.check_ins[tour_id])]

    def has_checked_in(self, tour_id: int, participant: str) -> bool:
        self.get_tour(tour_id)
        return (tour_id, participant) in self.storage.check_in_index

    # Reward ledger

    def get_balance(self, participant: str) -> int:
        return self.storage.balances.get(participant, 0)

    def _check_headroom(self, participant: str, amount: int) -> None:
        if self.get_balance(participant) + amount > self.max_balance:
            raise BalanceOverflowError(f"Crediting {amount} points would overflow {participant}'s balance")

    def _credit(self, participant: str, amount: int) -> None:
        self._check_headroom(participant, amount)
        self.storage.balances[participant] = self.get_balance(participant) + amount

    # Administration

    def get_vote_threshold(self) -> int:
        return self._vote_threshold

    def set_vote_threshold(self, threshold: int, caller: str) -> None:
        self._require_admin(caller)
        if threshold < 1:
            raise InvalidParametersError("Vote threshold must be at least 1")
        previous, self._vote_threshold = self._vote_threshold, threshold
        self._emit(EventType.VOTE_THRESHOLD_CHANGED, previous=previous, threshold=threshold)
        logger.info("Vote threshold changed from %s to %s by %s", previous, threshold, caller)

    def operations_enabled(self) -> bool:
        return self.policy.operations_enabled()

    def pause_operations(self, caller: str) -> None:
        self._require_admin(caller)
        self.policy.set_enabled(False)
        self._emit(EventType.OPERATIONS_PAUSED, by=caller)
        logger.warning("Operations paused by %s", caller)

    def resume_operations(self, caller: str) -> None:
        self._require_admin(caller)
        self.policy.set_enabled(True)
        self._emit(EventType.OPERATIONS_RESUMED, by=caller)
        logger.info("Operations resumed by %s", caller)

    def get_config(self) -> EngineConfig:
        return EngineConfig(
            creation_points=self.creation_points,
            check_in_points=self.check_in_points,
            vote_threshold=self._vote_threshold,
            min_vote_stake=self.min_vote_stake,
            operations_enabled=self.operations_enabled(),
        )

    # Helpers

    def _require_enabled(self) -> None:
        if not self.policy.operations_enabled():
            raise OperationsPausedError("Operations are paused")

    def _parse_stake(self, stake: Union[Decimal, int, str]) -> Decimal:
        try:
            amount = Decimal(stake)
        except (InvalidOperation, TypeError, ValueError):
            raise InsufficientStakeError(f"Stake {stake!r} is not a number")
        if not amount.is_finite():
            raise InsufficientStakeError(f"Stake {stake} is not a finite amount")
        return amount

    def _require_admin(self, caller: str) -> None:
        if not self.policy.is_administrator(caller):
            raise NotAdministratorError(f"{caller} is not an administrator")

    def _write_tour(self, tour_id: int, data: dict, **changes) -> dict:
        updated = {**data, **changes}
        self.storage.tours[tour_id] = updated
        return updated

    def _emit(self, event_type: EventType, tour_id: Optional[int] = None, **payload) -> None:
        try:
            self.notifier.publish(make_event(event_type, tour_id, **payload))
        except Exception:
            logger.exception("Failed to deliver %s event for tour %s", event_type.value, tour_id)
