from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import threading
import time
from contextlib import contextmanager
from typing import Callable

from decision_engine.data.snapshot_store import SnapshotStore
from decision_engine.domain.models import RevealedSeed, Seed, SeedCommitment, VerificationResult
from decision_engine.infra.telemetry import NullEventLogger


def commit_hash(secret: str | bytes) -> str:
    raw = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)
    return hashlib.sha256(raw).hexdigest()


class FairnessSeedAuthority:
    """Commit-reveal server seeds.

    Exactly one seed is active. Its hash is published while it is in use; its
    secret is only handed out by ``rotate`` once a successor is active. The seed
    log is append-only.
    """

    def __init__(
        self,
        *,
        store: SnapshotStore | None = None,
        clock: Callable[[], float] = time.time,
        log: logging.Logger | None = None,
        events=None,
    ):
        self.store = store
        self.clock = clock
        self.log = log or logging.getLogger("decision-engine.fairness")
        self.events = events or NullEventLogger()
        self._seeds: list[Seed] = []
        self._lock = threading.RLock()

    def generate(self) -> Seed:
        now = self.clock()
        secret = secrets.token_hex(32)
        return Seed(
            id=f"seed_{int(now * 1000)}_{secrets.token_hex(3)}",
            secret=secret,
            commit_hash=commit_hash(secret),
            created_at=now,
            revealed_at=None,
            active=True,
        )

    def load(self) -> "FairnessSeedAuthority":
        raw = self.store.load() if self.store is not None else None
        if isinstance(raw, list):
            try:
                seeds = [Seed.from_dict(row) for row in raw]
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                self.store.reject(exc)
            else:
                with self._lock:
                    self._seeds = seeds
                    self._repair_active()
                self.log.info("fairness seeds restored count=%s", len(seeds))
        self.ensure_active()
        return self

    def _repair_active(self) -> None:
        active = [s for s in self._seeds if s.active]
        # keep the newest when a snapshot carries more than one active seed
        for s in active[:-1]:
            s.active = False
            if s.revealed_at is None:
                s.revealed_at = self.clock()

    def ensure_active(self) -> SeedCommitment:
        return self.active_seed().commitment()

    def _active(self) -> Seed | None:
        for s in reversed(self._seeds):
            if s.active:
                return s
        return None

    def active_seed(self) -> Seed:
        """Internal accessor for draw services; never expose the result."""
        with self._lock:
            cur = self._active()
            if cur is None:
                cur = self.generate()
                self._seeds.append(cur)
                self._persist()
            return cur

    @contextmanager
    def pinned(self):
        """Hold off rotation while the caller produces an outcome from the active seed."""
        with self._lock:
            yield self.active_seed()

    def current(self) -> SeedCommitment:
        return self.active_seed().commitment()

    def rotate(self) -> tuple[RevealedSeed | None, SeedCommitment]:
        with self._lock:
            prev = self._active()
            now = self.clock()
            revealed = None
            if prev is not None:
                prev.active = False
                prev.revealed_at = now
                revealed = RevealedSeed(
                    id=prev.id,
                    secret=prev.secret,
                    commit_hash=prev.commit_hash,
                    created_at=prev.created_at,
                    revealed_at=now,
                )
            nxt = self.generate()
            self._seeds.append(nxt)
            self._persist()
        self.log.info("seed rotated previous=%s next=%s", revealed.id if revealed else "-", nxt.id)
        self.events.emit("seed.rotate", previous=revealed.id if revealed else None, next=nxt.id)
        return revealed, nxt.commitment()

    @staticmethod
    def verify(seed: str | bytes, claimed_hash: str) -> bool:
        claimed = str(claimed_hash).strip().lower().encode("utf-8")
        return hmac.compare_digest(commit_hash(seed).encode("ascii"), claimed)

    def check(self, seed_id: str, claimed_hash: str) -> VerificationResult:
        with self._lock:
            match = next((s for s in self._seeds if s.id == seed_id), None)
        if match is None:
            return VerificationResult(ok=False, reason="unknown_seed", seed_id=seed_id)
        if match.active or match.revealed_at is None:
            return VerificationResult(ok=False, reason="not_revealed", seed_id=seed_id)
        actual = commit_hash(match.secret)
        if not self.verify(match.secret, claimed_hash):
            return VerificationResult(
                ok=False,
                reason="hash_mismatch",
                seed_id=seed_id,
                expected_hash=str(claimed_hash),
                actual_hash=actual,
            )
        return VerificationResult(ok=True, reason="ok", seed_id=seed_id, expected_hash=actual, actual_hash=actual)

    def history(self, include_active: bool = False) -> list[dict]:
        with self._lock:
            return [s.public() for s in self._seeds if include_active or not s.active]

    def _persist(self) -> None:
        # caller holds the lock
        if self.store is not None:
            self.store.save([s.to_dict() for s in self._seeds])
