"""
Router factory for the orderable CMS resources.
Every resource exposes the same list/get/create/update/delete/reorder routes;
reads are public, writes require a CMS token.
"""
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic import BaseModel, ValidationError
from typing import List, Optional, Type, TypeVar
import logging

from clinic_cms.database import get_db
from clinic_cms.exceptions import InvalidInputError
from clinic_cms.schemas import ReorderRequest
from clinic_cms.services.resources import OrderedResource
from clinic_cms.utils.security import verify_cms_token
from clinic_cms.utils.uploads import read_image_upload

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def parse_form_data(schema: Type[SchemaT], raw: Optional[str]) -> SchemaT:
    """
    Validate the JSON `data` field of a multipart request.

    Raises:
        InvalidInputError: Missing field, malformed JSON or failed validation
    """
    if raw is None:
        raise InvalidInputError("Missing data field", "The multipart field 'data' is required")
    try:
        return schema.model_validate_json(raw)
    except ValidationError as e:
        raise InvalidInputError(
            "Invalid data format",
            e.errors(include_url=False, include_context=False, include_input=False),
        )


def build_resource_router(
    resource: OrderedResource,
    *,
    prefix: str,
    tag: str,
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    response_schema: Type[BaseModel],
) -> APIRouter:
    """
    Build the CRUD + reorder router of one resource.

    Create and update take multipart/form-data with a JSON `data` field and
    an optional `image` file.
    """
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.get("", response_model=List[response_schema])
    async def list_records(db: AsyncSession = Depends(get_db)):
        records = await resource.list(db)
        logger.info(f"Retrieved {len(records)} {resource.label} record(s)")
        return [response_schema.model_validate(record) for record in records]

    @router.api_route("/reorder", methods=["PATCH", "POST"], response_model=List[response_schema])
    async def reorder_records(
        request: ReorderRequest,
        db: AsyncSession = Depends(get_db),
        token: dict = Depends(verify_cms_token),
    ):
        """
        Reorder records by updating display_order.
        The body lists ids in the desired order; each id gets its list index.
        """
        records = await resource.reorder(db, request.ordered_ids)
        return [response_schema.model_validate(record) for record in records]

    @router.get("/{record_id}", response_model=response_schema)
    async def get_record(record_id: int, db: AsyncSession = Depends(get_db)):
        return response_schema.model_validate(await resource.get(db, record_id))

    @router.post("", response_model=response_schema, status_code=status.HTTP_201_CREATED)
    async def create_record(
        data: Optional[str] = Form(None),
        image: Optional[UploadFile] = File(None),
        db: AsyncSession = Depends(get_db),
        token: dict = Depends(verify_cms_token),
    ):
        payload = parse_form_data(create_schema, data)
        upload = await read_image_upload(image)
        record = await resource.create(db, payload.model_dump(), upload)
        return response_schema.model_validate(record)

    @router.patch("/{record_id}", response_model=response_schema)
    async def update_record(
        record_id: int,
        data: Optional[str] = Form(None),
        image: Optional[UploadFile] = File(None),
        db: AsyncSession = Depends(get_db),
        token: dict = Depends(verify_cms_token),
    ):
        changes = parse_form_data(update_schema, data or "{}").changes()
        upload = await read_image_upload(image)
        record = await resource.update(db, record_id, changes, upload)
        return response_schema.model_validate(record)

    @router.delete("/{record_id}")
    async def delete_record(
        record_id: int,
        db: AsyncSession = Depends(get_db),
        token: dict = Depends(verify_cms_token),
    ):
        await resource.delete(db, record_id)
        return {"message": f"{resource.label} deleted successfully", "id": record_id}

    return router
