# sharptools/collection.py
"""
Ordered image collection behind the image-to-PDF tool.

The collection is an immutable ``CollectionState``. Every user action is an
event, and ``reduce(state, event, previews)`` returns the next state plus the
effects to run (preview releases). The notification lives inside the state,
so a new collection and its message are always committed together.

``ImageCollection`` owns one state and one ``PreviewStore``; it is what the
HTTP layer and the tests talk to.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from . import config
from .assembly import AssembledDocument, assemble_document
from .errors import NoInput, ValidationError
from .previews import PreviewHandle, PreviewStore

logger = logging.getLogger(__name__)

ORIENTATIONS = ("portrait", "landscape")
DIRECTIONS = ("up", "down")

SUCCESS = "success"
ERROR = "error"
INFO = "info"


# ----------------------------
# Data
# ----------------------------
@dataclass(frozen=True)
class ImageFile:
    filename: str
    content_type: str
    data: bytes = field(repr=False)


@dataclass(frozen=True)
class PageSettings:
    orientation: str = config.DEFAULT_ORIENTATION
    margin: float = config.DEFAULT_MARGIN_MM
    quality: int = config.DEFAULT_QUALITY

    def __post_init__(self):
        if self.orientation not in ORIENTATIONS:
            raise ValidationError(f"Orientation must be one of: {', '.join(ORIENTATIONS)}")
        lo, hi = config.MARGIN_RANGE
        if not lo <= self.margin <= hi:
            raise ValidationError(f"Margin must be between {lo} and {hi} mm")
        lo, hi = config.QUALITY_RANGE
        if not lo <= self.quality <= hi:
            raise ValidationError(f"Quality must be between {lo} and {hi}%")


@dataclass(frozen=True)
class Notification:
    message: str
    level: str


@dataclass(frozen=True)
class ImageEntry:
    id: int
    file: ImageFile
    preview: PreviewHandle = field(compare=False)


@dataclass(frozen=True)
class CollectionState:
    entries: Tuple[ImageEntry, ...] = ()
    settings: PageSettings = PageSettings()
    notification: Optional[Notification] = None
    next_id: int = 1
    dragged_id: Optional[int] = None
    busy: bool = False

    def index_of(self, entry_id: int) -> int:
        for i, entry in enumerate(self.entries):
            if entry.id == entry_id:
                return i
        return -1

    @property
    def ids(self) -> List[int]:
        return [e.id for e in self.entries]


# ----------------------------
# Events
# ----------------------------
@dataclass(frozen=True)
class AddImages:
    files: Sequence[ImageFile]


@dataclass(frozen=True)
class MoveImage:
    index: int
    direction: str


@dataclass(frozen=True)
class BeginReorder:
    entry_id: int


@dataclass(frozen=True)
class CompleteReorder:
    source_id: int
    target_id: int


@dataclass(frozen=True)
class RemoveImage:
    entry_id: int


@dataclass(frozen=True)
class ClearAll:
    notify: bool = True


@dataclass(frozen=True)
class UpdateSettings:
    changes: Dict[str, Any]


@dataclass(frozen=True)
class AssemblyRequested:
    pass


@dataclass(frozen=True)
class AssemblySucceeded:
    page_count: int


@dataclass(frozen=True)
class AssemblyFailed:
    pass


# ----------------------------
# Effects
# ----------------------------
@dataclass(frozen=True)
class ReleasePreview:
    handle: PreviewHandle


@dataclass(frozen=True)
class Transition:
    state: CollectionState
    effects: Tuple[ReleasePreview, ...] = ()


# ----------------------------
# Reducer
# ----------------------------
def _notify(state: CollectionState, message: str, level: str, **changes) -> CollectionState:
    return replace(state, notification=Notification(message, level), **changes)


def _add_images(state: CollectionState, event: AddImages, previews: PreviewStore) -> Transition:
    valid = [f for f in event.files if f.content_type in config.ALLOWED_IMAGE_TYPES]

    if not valid:
        return Transition(_notify(state, "Please upload valid images (JPEG, PNG, WebP, GIF)", ERROR))

    if len(state.entries) + len(valid) > config.MAX_IMAGES:
        return Transition(_notify(state, f"Maximum {config.MAX_IMAGES} images allowed", ERROR))

    new_entries = []
    next_id = state.next_id
    for f in valid:
        new_entries.append(ImageEntry(id=next_id, file=f, preview=previews.create(f.data, f.content_type)))
        next_id += 1

    return Transition(_notify(
        state,
        f"{len(new_entries)} image(s) added",
        SUCCESS,
        entries=state.entries + tuple(new_entries),
        next_id=next_id,
    ))


def _move_image(state: CollectionState, event: MoveImage, previews: PreviewStore) -> Transition:
    if event.direction not in DIRECTIONS:
        raise ValidationError(f"Direction must be one of: {', '.join(DIRECTIONS)}")

    index = event.index
    last = len(state.entries) - 1
    if index < 0 or index > last:
        return Transition(state)
    if (event.direction == "up" and index == 0) or (event.direction == "down" and index == last):
        return Transition(state)

    other = index - 1 if event.direction == "up" else index + 1
    entries = list(state.entries)
    entries[index], entries[other] = entries[other], entries[index]
    return Transition(_notify(state, "Image order updated", SUCCESS, entries=tuple(entries)))


def _begin_reorder(state: CollectionState, event: BeginReorder, previews: PreviewStore) -> Transition:
    if state.index_of(event.entry_id) == -1:
        return Transition(state)
    return Transition(replace(state, dragged_id=event.entry_id))


def _complete_reorder(state: CollectionState, event: CompleteReorder, previews: PreviewStore) -> Transition:
    cleared = replace(state, dragged_id=None)
    if event.source_id == event.target_id:
        return Transition(cleared)

    source = state.index_of(event.source_id)
    target = state.index_of(event.target_id)
    if source == -1 or target == -1:
        return Transition(cleared)

    # target index is taken before the source is pulled out
    entries = list(state.entries)
    moved = entries.pop(source)
    entries.insert(target, moved)
    return Transition(_notify(cleared, "Image order updated", SUCCESS, entries=tuple(entries)))


def _remove_image(state: CollectionState, event: RemoveImage, previews: PreviewStore) -> Transition:
    index = state.index_of(event.entry_id)
    if index == -1:
        return Transition(state)

    removed = state.entries[index]
    entries = state.entries[:index] + state.entries[index + 1:]
    dragged_id = None if state.dragged_id == removed.id else state.dragged_id

    if entries:
        new_state = _notify(state, "Image removed", SUCCESS, entries=entries, dragged_id=dragged_id)
    else:
        new_state = _notify(state, "All images removed", SUCCESS, entries=entries, dragged_id=dragged_id)
    return Transition(new_state, (ReleasePreview(removed.preview),))


def _clear_all(state: CollectionState, event: ClearAll, previews: PreviewStore) -> Transition:
    effects = tuple(ReleasePreview(e.preview) for e in state.entries)
    if event.notify:
        new_state = _notify(state, "All images cleared", SUCCESS, entries=(), dragged_id=None)
    else:
        new_state = replace(state, entries=(), dragged_id=None)
    return Transition(new_state, effects)


def _update_settings(state: CollectionState, event: UpdateSettings, previews: PreviewStore) -> Transition:
    unknown = set(event.changes) - {"orientation", "margin", "quality"}
    if unknown:
        raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")
    return Transition(replace(state, settings=replace(state.settings, **event.changes)))


def _assembly_requested(state: CollectionState, event: AssemblyRequested, previews: PreviewStore) -> Transition:
    if not state.entries:
        return Transition(_notify(state, "No images selected", ERROR))
    return Transition(_notify(state, "Generating PDF...", INFO, busy=True))


def _assembly_succeeded(state: CollectionState, event: AssemblySucceeded, previews: PreviewStore) -> Transition:
    return Transition(_notify(state, f"PDF generated with {event.page_count} image(s)", SUCCESS, busy=False))


def _assembly_failed(state: CollectionState, event: AssemblyFailed, previews: PreviewStore) -> Transition:
    return Transition(_notify(state, "Error generating PDF", ERROR, busy=False))


_HANDLERS: Dict[type, Callable[..., Transition]] = {
    AddImages: _add_images,
    MoveImage: _move_image,
    BeginReorder: _begin_reorder,
    CompleteReorder: _complete_reorder,
    RemoveImage: _remove_image,
    ClearAll: _clear_all,
    UpdateSettings: _update_settings,
    AssemblyRequested: _assembly_requested,
    AssemblySucceeded: _assembly_succeeded,
    AssemblyFailed: _assembly_failed,
}


def reduce(state: CollectionState, event: Any, previews: PreviewStore) -> Transition:
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unknown collection event: {event!r}")
    return handler(state, event, previews)


# ----------------------------
# Manager
# ----------------------------
class ImageCollection:
    """Holds a collection state and runs the effects of each transition."""

    def __init__(self, settings: Optional[PageSettings] = None, previews: Optional[PreviewStore] = None):
        self.previews = previews or PreviewStore()
        self._state = CollectionState(settings=settings or PageSettings())

    @property
    def state(self) -> CollectionState:
        return self._state

    @property
    def entries(self) -> Tuple[ImageEntry, ...]:
        return self._state.entries

    @property
    def settings(self) -> PageSettings:
        return self._state.settings

    @property
    def notification(self) -> Optional[Notification]:
        return self._state.notification

    def __len__(self) -> int:
        return len(self._state.entries)

    def dispatch(self, event) -> CollectionState:
        transition = reduce(self._state, event, self.previews)
        self._state = transition.state
        for effect in transition.effects:
            effect.handle.release()
        return self._state

    # --- operations ---
    def add_images(self, files: Sequence[ImageFile]) -> Notification:
        return self.dispatch(AddImages(tuple(files))).notification

    def move_image(self, index: int, direction: str) -> None:
        self.dispatch(MoveImage(index, direction))

    def begin_reorder(self, entry_id: int) -> None:
        self.dispatch(BeginReorder(entry_id))

    def complete_reorder(self, source_id: int, target_id: int) -> None:
        self.dispatch(CompleteReorder(source_id, target_id))

    def remove_image(self, entry_id: int) -> None:
        self.dispatch(RemoveImage(entry_id))

    def clear_all(self) -> None:
        self.dispatch(ClearAll())

    def update_settings(self, **changes) -> PageSettings:
        return self.dispatch(UpdateSettings(changes)).settings

    async def assemble(self, clock: Optional[Callable[[], float]] = None) -> AssembledDocument:
        """Build the PDF from the current entries, one page per image, in order."""
        if self._state.busy:
            raise ValidationError("PDF generation already in progress")

        state = self.dispatch(AssemblyRequested())
        if not state.entries:
            raise NoInput("No images selected")

        try:
            document = await assemble_document(state.entries, state.settings, clock=clock)
        except BaseException:
            # also covers cancellation, so busy never sticks
            self.dispatch(AssemblyFailed())
            raise

        self.dispatch(AssemblySucceeded(document.page_count))
        logger.info("Assembled %s page(s) into %s", document.page_count, document.filename)
        return document

    def close(self) -> None:
        """Release every live preview without touching the notification."""
        self.dispatch(ClearAll(notify=False))

    def __enter__(self) -> "ImageCollection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def snapshot(self) -> Dict[str, Any]:
        state = self._state
        return {
            "images": [
                {
                    "id": e.id,
                    "filename": e.file.filename,
                    "content_type": e.file.content_type,
                    "size": len(e.file.data),
                    "preview": e.preview.token,
                }
                for e in state.entries
            ],
            "settings": {
                "orientation": state.settings.orientation,
                "margin": state.settings.margin,
                "quality": state.settings.quality,
            },
            "notification": (
                {"message": state.notification.message, "type": state.notification.level}
                if state.notification
                else None
            ),
            "dragged_id": state.dragged_id,
            "busy": state.busy,
        }
