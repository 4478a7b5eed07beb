from __future__ import annotations

import hashlib
import hmac

_MANTISSA_BITS = 52


def fair_roll(secret: str, client_seed: str, nonce: int) -> float:
    """Uniform float in [0, 1) from HMAC-SHA256(secret, "client_seed:nonce").

    Anyone holding the revealed secret can recompute the roll for a past draw.
    """
    msg = f"{client_seed}:{int(nonce)}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), msg, hashlib.sha256).digest()
    head = int.from_bytes(digest[:8], "big") >> (64 - _MANTISSA_BITS)
    return head / float(1 << _MANTISSA_BITS)


class SeededRandom:
    """``random()``-compatible source that replays fair rolls for one draw."""

    def __init__(self, secret: str, client_seed: str, nonce: int):
        self.secret = secret
        self.client_seed = client_seed
        self.nonce = int(nonce)
        self.last = 0.0
        self._calls = 0

    def random(self) -> float:
        # extra calls within one draw derive sub-nonces so they stay replayable
        seed = self.client_seed if self._calls == 0 else f"{self.client_seed}#{self._calls}"
        self._calls += 1
        self.last = fair_roll(self.secret, seed, self.nonce)
        return self.last
