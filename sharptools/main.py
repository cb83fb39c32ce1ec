# sharptools/main.py
import logging
import threading
import time
import uuid
from pathlib import Path
from typing import Callable, Dict, List, Literal, Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from . import __version__, config
from .collection import ERROR, ImageCollection, ImageFile, PageSettings
from .errors import AssemblyError, SharpToolsError, SplitError, TransportError, ValidationError
from .splitter import safe_pdf_name, split_pdf

logger = logging.getLogger(__name__)


# ----------------------------
# App
# ----------------------------
app = FastAPI(title="Sharp Tools", version=__version__)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(TransportError)
async def transport_error_handler(request: Request, exc: TransportError):
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(SharpToolsError)
async def tool_error_handler(request: Request, exc: SharpToolsError):
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# ----------------------------
# Upload limit helpers
# ----------------------------
def _http_413(msg: str):
    raise HTTPException(status_code=413, detail=msg)


async def read_upload_limited(file: UploadFile, max_bytes: int) -> bytes:
    """
    Reads an UploadFile into memory in 1MB chunks, enforcing max size while reading.
    """
    chunks: List[bytes] = []
    total = 0
    try:
        while True:
            chunk = await file.read(1024 * 1024)
            if not chunk:
                break
            total += len(chunk)
            if total > max_bytes:
                _http_413(f"File too large. Max allowed is {config.MAX_UPLOAD_MB}MB.")
            chunks.append(chunk)
    finally:
        await file.close()
    return b"".join(chunks)


async def read_images(files: List[UploadFile]) -> List[ImageFile]:
    out: List[ImageFile] = []
    total = 0
    for f in files:
        if not f.filename:
            continue
        remaining = max(0, config.MAX_UPLOAD_BYTES - total)
        if remaining <= 0:
            _http_413(f"Total upload too large. Max allowed is {config.MAX_UPLOAD_MB}MB.")
        data = await read_upload_limited(f, remaining)
        total += len(data)
        out.append(ImageFile(filename=f.filename, content_type=f.content_type or "", data=data))
    return out


def _pdf_download(data: bytes, filename: str) -> Response:
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ----------------------------
# Health
# ----------------------------
@app.get("/health")
def health():
    return {"ok": True, "max_upload_mb": config.MAX_UPLOAD_MB}


# ----------------------------
# Split
# ----------------------------
@app.post("/split")
async def split(file: UploadFile = File(...), pages: str = Form("")):
    if not file.filename:
        raise HTTPException(400, "No filename provided")
    if Path(file.filename).suffix.lower() != ".pdf":
        raise HTTPException(400, "Only PDF allowed")

    data = await read_upload_limited(file, config.MAX_UPLOAD_BYTES)
    try:
        out = split_pdf(data, pages)
    except SplitError as e:
        raise HTTPException(500, str(e))

    base = safe_pdf_name(Path(file.filename).stem)
    return _pdf_download(out, f"split-{base}.pdf")


# ----------------------------
# Image to PDF (one shot)
# ----------------------------
@app.post("/convert/image-to-pdf")
async def image_to_pdf(
    files: List[UploadFile] = File(...),
    orientation: str = Form(config.DEFAULT_ORIENTATION),
    margin: float = Form(config.DEFAULT_MARGIN_MM),
    quality: int = Form(config.DEFAULT_QUALITY),
):
    settings = PageSettings(orientation=orientation, margin=margin, quality=quality)
    images = await read_images(files)

    with ImageCollection(settings=settings) as collection:
        note = collection.add_images(images)
        if note.level == ERROR:
            raise HTTPException(400, note.message)
        doc = await collection.assemble()

    return _pdf_download(doc.data, doc.filename)


# ----------------------------
# Collections
# ----------------------------
class CollectionStore:
    """
    Live collections keyed by id. Idle ones are evicted (and closed, releasing
    their previews) before a new one is admitted; the store never holds more
    than MAX_COLLECTIONS.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._items: Dict[str, ImageCollection] = {}
        self._last_used: Dict[str, float] = {}
        self._lock = threading.Lock()

    def __contains__(self, cid: str) -> bool:
        with self._lock:
            return cid in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def add(self, collection: ImageCollection) -> str:
        evicted = self.evict_idle()
        with self._lock:
            if len(self._items) >= config.MAX_COLLECTIONS:
                raise HTTPException(503, "Too many open collections, try again later")
            cid = uuid.uuid4().hex
            self._items[cid] = collection
            self._last_used[cid] = self.clock()
        if evicted:
            logger.info("Evicted %s idle collection(s)", evicted)
        return cid

    def get(self, cid: str) -> Optional[ImageCollection]:
        with self._lock:
            collection = self._items.get(cid)
            if collection is not None:
                self._last_used[cid] = self.clock()
            return collection

    def pop(self, cid: str) -> Optional[ImageCollection]:
        with self._lock:
            self._last_used.pop(cid, None)
            return self._items.pop(cid, None)

    def evict_idle(self) -> int:
        cutoff = self.clock() - config.COLLECTION_IDLE_SECONDS
        with self._lock:
            stale = [
                cid for cid, used in self._last_used.items()
                if used <= cutoff and not self._items[cid].state.busy
            ]
            closing = [self._items.pop(cid) for cid in stale]
            for cid in stale:
                del self._last_used[cid]
        for collection in closing:
            collection.close()
        return len(closing)

    def clear(self) -> None:
        with self._lock:
            closing = list(self._items.values())
            self._items.clear()
            self._last_used.clear()
        for collection in closing:
            collection.close()


collections = CollectionStore()


class MoveRequest(BaseModel):
    index: int
    direction: Literal["up", "down"]


class BeginReorderRequest(BaseModel):
    entry_id: int


class ReorderRequest(BaseModel):
    source_id: int
    target_id: int


class SettingsRequest(BaseModel):
    orientation: Optional[Literal["portrait", "landscape"]] = None
    margin: Optional[float] = None
    quality: Optional[int] = None


def get_collection(cid: str) -> ImageCollection:
    collection = collections.get(cid)
    if collection is None:
        raise HTTPException(404, "Collection not found")
    return collection


def _snapshot(cid: str, collection: ImageCollection) -> dict:
    return {"id": cid, **collection.snapshot()}


@app.post("/collections", status_code=201)
async def create_collection():
    collection = ImageCollection()
    cid = collections.add(collection)
    logger.info("Created collection %s", cid)
    return _snapshot(cid, collection)


@app.get("/collections/{cid}")
async def read_collection(cid: str):
    return _snapshot(cid, get_collection(cid))


@app.delete("/collections/{cid}", status_code=204)
async def delete_collection(cid: str):
    collection = collections.pop(cid)
    if collection is None:
        raise HTTPException(404, "Collection not found")
    collection.close()
    return Response(status_code=204)


@app.post("/collections/{cid}/images")
async def add_images(cid: str, files: List[UploadFile] = File(...)):
    collection = get_collection(cid)
    images = await read_images(files)
    note = collection.add_images(images)
    if note.level == ERROR:
        return JSONResponse(status_code=400, content=_snapshot(cid, collection))
    return _snapshot(cid, collection)


@app.post("/collections/{cid}/move")
async def move_image(cid: str, body: MoveRequest):
    collection = get_collection(cid)
    collection.move_image(body.index, body.direction)
    return _snapshot(cid, collection)


@app.post("/collections/{cid}/reorder/begin")
async def begin_reorder(cid: str, body: BeginReorderRequest):
    collection = get_collection(cid)
    collection.begin_reorder(body.entry_id)
    return _snapshot(cid, collection)


@app.post("/collections/{cid}/reorder")
async def complete_reorder(cid: str, body: ReorderRequest):
    collection = get_collection(cid)
    collection.complete_reorder(body.source_id, body.target_id)
    return _snapshot(cid, collection)


@app.delete("/collections/{cid}/images/{entry_id}")
async def remove_image(cid: str, entry_id: int):
    collection = get_collection(cid)
    collection.remove_image(entry_id)
    return _snapshot(cid, collection)


@app.delete("/collections/{cid}/images")
async def clear_images(cid: str):
    collection = get_collection(cid)
    collection.clear_all()
    return _snapshot(cid, collection)


@app.put("/collections/{cid}/settings")
async def update_settings(cid: str, body: SettingsRequest):
    collection = get_collection(cid)
    changes = {k: v for k, v in body.model_dump().items() if v is not None}
    collection.update_settings(**changes)
    return _snapshot(cid, collection)


@app.get("/collections/{cid}/previews/{token}")
async def read_preview(cid: str, token: str):
    collection = get_collection(cid)
    item = collection.previews.get(token)
    if item is None:
        raise HTTPException(404, "Preview not found")
    data, content_type = item
    return Response(content=data, media_type=content_type)


@app.post("/collections/{cid}/assemble")
async def assemble(cid: str):
    collection = get_collection(cid)
    try:
        doc = await collection.assemble()
    except AssemblyError:
        return JSONResponse(status_code=500, content=_snapshot(cid, collection))
    except ValidationError:
        return JSONResponse(status_code=400, content=_snapshot(cid, collection))
    return _pdf_download(doc.data, doc.filename)
