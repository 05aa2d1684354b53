from dataclasses import dataclass
from typing import ClassVar, Union

from veo_generator.services.blob_store import BlobReference


@dataclass(frozen=True)
class Idle:
    name: ClassVar[str] = "idle"


@dataclass(frozen=True)
class Loading:
    message: str
    name: ClassVar[str] = "loading"


@dataclass(frozen=True)
class Error:
    message: str
    name: ClassVar[str] = "error"


@dataclass(frozen=True)
class Ready:
    video: BlobReference
    name: ClassVar[str] = "ready"


UIState = Union[Idle, Loading, Error, Ready]
