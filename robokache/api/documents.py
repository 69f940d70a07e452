"""Document API endpoints.

Endpoints are thin: they resolve the caller, read the request and hand
everything to DocumentService, which applies the access policy.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response, Security
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..core.auth import bearer_scheme, optional_principal, require_principal
from ..core.id_codec import IDCodec, get_id_codec
from ..database import get_db
from ..exceptions import ValidationError
from ..schemas.document import DocumentCreate, DocumentCreated, DocumentResponse, DocumentUpdate
from ..services import DocumentService
from ..storage.blob_store import FilesystemBlobStore, get_blob_store

router = APIRouter(
    prefix="/api/document",
    tags=["documents"],
    dependencies=[Security(bearer_scheme)],
)


def get_document_service(
    db: Session = Depends(get_db),
    codec: IDCodec = Depends(get_id_codec),
    blob_store: FilesystemBlobStore = Depends(get_blob_store),
) -> DocumentService:
    return DocumentService(db, codec, blob_store)


def _parse_has_parent(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValidationError("has_parent must be 'true' or 'false'", field="has_parent")


@router.get("", response_model=List[DocumentResponse], response_model_exclude_unset=True)
def list_documents(
    has_parent: Optional[str] = Query(None, description="'true' for child documents only, 'false' for roots only"),
    service: DocumentService = Depends(get_document_service),
    principal: Optional[str] = Depends(optional_principal),
):
    """List the caller's documents plus all public documents."""
    return service.list_documents(principal, has_parent=_parse_has_parent(has_parent))


@router.post("", response_model=DocumentCreated, status_code=201)
def create_document(
    document: DocumentCreate,
    service: DocumentService = Depends(get_document_service),
    principal: str = Depends(require_principal),
):
    """Create a document owned by the caller."""
    return DocumentCreated(id=service.create_document(principal, document))


@router.get("/{doc_id}", response_model=DocumentResponse, response_model_exclude_unset=True)
def get_document(
    doc_id: str,
    service: DocumentService = Depends(get_document_service),
    principal: Optional[str] = Depends(optional_principal),
):
    """Fetch one document by ID. Hidden and missing documents both return 404."""
    return service.get_document(principal, doc_id)


@router.put("/{doc_id}", response_model=DocumentResponse, response_model_exclude_unset=True)
def update_document(
    doc_id: str,
    update: DocumentUpdate,
    service: DocumentService = Depends(get_document_service),
    principal: str = Depends(require_principal),
):
    """Change parent, visibility or metadata of a document the caller owns."""
    return service.update_document(principal, doc_id, update)


@router.delete("/{doc_id}")
def delete_document(
    doc_id: str,
    service: DocumentService = Depends(get_document_service),
    principal: str = Depends(require_principal),
):
    """Delete a document the caller owns, along with its data."""
    service.delete_document(principal, doc_id)
    return {"id": doc_id, "deleted": True}


@router.get("/{doc_id}/children", response_model=List[DocumentResponse], response_model_exclude_unset=True)
def list_children(
    doc_id: str,
    service: DocumentService = Depends(get_document_service),
    principal: Optional[str] = Depends(optional_principal),
):
    """List the children of a document the caller can view."""
    return service.list_children(principal, doc_id)


@router.post("/{doc_id}/children", response_model=DocumentCreated)
async def create_child(
    doc_id: str,
    request: Request,
    service: DocumentService = Depends(get_document_service),
    principal: str = Depends(require_principal),
):
    """Create a child document whose data is the raw request body.

    The child inherits the parent's visibility.
    """
    data = await request.body()
    new_id = await run_in_threadpool(service.create_child, principal, doc_id, data)
    return DocumentCreated(id=new_id)


@router.get("/{doc_id}/data")
def get_data(
    doc_id: str,
    service: DocumentService = Depends(get_document_service),
    principal: Optional[str] = Depends(optional_principal),
):
    """Return the document's raw data (empty when none was stored)."""
    return Response(content=service.get_data(principal, doc_id), media_type="application/octet-stream")


@router.put("/{doc_id}/data")
async def set_data(
    doc_id: str,
    request: Request,
    service: DocumentService = Depends(get_document_service),
    principal: str = Depends(require_principal),
):
    """Replace the document's raw data with the request body."""
    data = await request.body()
    await run_in_threadpool(service.set_data, principal, doc_id, data)
    return {"id": doc_id, "bytes": len(data)}
