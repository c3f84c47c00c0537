# backend/services/view_state.py
# Add-fabric form state as immutable values and a pure reducer over form/upload events

from dataclasses import dataclass, replace
from typing import Any, Optional, Tuple

STATUS_PREPARING = "Preparing uploads..."
STATUS_UPLOADING = "Uploading images..."
STATUS_SAVING = "Saving fabric metadata..."
MISSING_FIELDS_PROMPT = "Please enter a fabric name and select a main image."


@dataclass(frozen=True)
class AddFabricState:
    name: str = ''
    main_image: Any = None
    men_collection: Tuple[Any, ...] = ()
    women_collection: Tuple[Any, ...] = ()
    kids_collection: Tuple[Any, ...] = ()
    status: str = ''
    uploaded_count: int = 0
    total_files: int = 0

    @property
    def percent(self) -> int:
        if self.total_files <= 0:
            return 0
        return round(self.uploaded_count / self.total_files * 100)

    @property
    def file_count(self) -> int:
        main = 1 if self.main_image is not None else 0
        return main + len(self.men_collection) + len(self.women_collection) + len(self.kids_collection)


# Form input events

@dataclass(frozen=True)
class NameChanged:
    name: str


@dataclass(frozen=True)
class MainImagePicked:
    image: Any


@dataclass(frozen=True)
class FilesAdded:
    segment: str
    files: Tuple[Any, ...]


# Async completion events

@dataclass(frozen=True)
class UploadStarted:
    total: int


@dataclass(frozen=True)
class FileUploaded:
    pass


@dataclass(frozen=True)
class MetadataSaving:
    pass


@dataclass(frozen=True)
class UploadSucceeded:
    fabric_id: Any


@dataclass(frozen=True)
class UploadFailed:
    message: str


_SEGMENT_FIELDS = {
    'men': 'men_collection',
    'women': 'women_collection',
    'kids': 'kids_collection',
}


def validate_add_fabric(state: AddFabricState) -> Optional[str]:
    """Blocking prompt for a submit with missing required fields, else None."""
    if not state.name or state.main_image is None:
        return MISSING_FIELDS_PROMPT
    return None


def reduce_add_fabric(state: AddFabricState, event) -> AddFabricState:
    if isinstance(event, NameChanged):
        return replace(state, name=event.name)

    if isinstance(event, MainImagePicked):
        return replace(state, main_image=event.image)

    if isinstance(event, FilesAdded):
        # New picks are appended to the segment, never replacing earlier ones
        field_name = _SEGMENT_FIELDS[event.segment]
        current = getattr(state, field_name)
        return replace(state, **{field_name: current + tuple(event.files)})

    if isinstance(event, UploadStarted):
        return replace(state, status=STATUS_UPLOADING, uploaded_count=0, total_files=event.total)

    if isinstance(event, FileUploaded):
        return replace(state, uploaded_count=state.uploaded_count + 1)

    if isinstance(event, MetadataSaving):
        return replace(state, status=STATUS_SAVING)

    if isinstance(event, UploadSucceeded):
        # Form and progress reset; only the status survives
        return AddFabricState(status=f"Fabric added successfully! ID: {event.fabric_id}")

    if isinstance(event, UploadFailed):
        return replace(state, status=f"Error adding fabric: {event.message}")

    raise TypeError(f"Unknown add-fabric event: {type(event).__name__}")


def begin_submit(state: AddFabricState) -> AddFabricState:
    """Status shown between the submit click and the first upload."""
    return replace(state, status=STATUS_PREPARING, uploaded_count=0)
