from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict

from .errors import ErrorKind, InvalidKeyError
from .registry import AssetKind, Direction

KEY_LENGTH = 16


class AssetKey(bytes):
    """Immutable 16-byte header key. ``str(key)`` is the 32-char hex form stored in System.json."""

    def __new__(cls, value: Union[bytes, bytearray]) -> 'AssetKey':
        if len(value) != KEY_LENGTH:
            raise InvalidKeyError(f'Key must be {KEY_LENGTH} bytes long, got {len(value)}')
        return super().__new__(cls, value)

    @classmethod
    def from_hex(cls, text: str) -> 'AssetKey':
        text = text.strip()
        if len(text) != KEY_LENGTH * 2:
            raise InvalidKeyError(f'Key must be {KEY_LENGTH * 2} hex characters, got {len(text)}')
        try:
            return cls(bytes.fromhex(text))
        except ValueError:
            raise InvalidKeyError(f'Key is not a hex string: {text!r}') from None

    @classmethod
    def coerce(cls, value: Union['AssetKey', bytes, str]) -> 'AssetKey':
        if isinstance(value, AssetKey):
            return value
        if isinstance(value, str):
            return cls.from_hex(value)
        return cls(value)

    def __str__(self) -> str:
        return self.hex()

    def __repr__(self) -> str:
        return f"AssetKey('{self.hex()}')"


class KeyFill(Enum):
    """How key bytes beyond an asset kind's known plaintext are filled."""

    ZERO = 'zero'
    REPEAT = 'repeat'


class OutcomeStatus(Enum):
    WRITTEN = 'written'
    SKIPPED = 'skipped'
    FAILED = 'failed'


class AssetJob(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Path
    target: Path
    kind: AssetKind
    direction: Direction


class BatchJob(BaseModel):
    model_config = ConfigDict(frozen=True)

    jobs: Tuple[AssetJob, ...]
    key: bytes
    strict: bool = False


class Outcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Path
    status: OutcomeStatus
    target: Optional[Path] = None
    kind: Optional[AssetKind] = None
    error: Optional[ErrorKind] = None
    reason: Optional[str] = None


class BatchReport(BaseModel):
    direction: Direction
    key: Optional[str] = None
    outcomes: List[Outcome] = []
    aborted: bool = False

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def written(self) -> int:
        return self._count(OutcomeStatus.WRITTEN)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def ok(self) -> bool:
        return not self.aborted and self.failed == 0

    def summary(self) -> dict:
        data = self.model_dump(mode='json')
        data.update(written=self.written, skipped=self.skipped, failed=self.failed, ok=self.ok)
        return data
