from typing import Any, Callable, Dict, List, Optional, Sequence, Type
import uuid

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from pydantic import BaseModel

from contactbook.core.auth import get_request_context
from contactbook.domains.crud.services import CrudService, RequestContext


def _found(record: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return record


def create_crud_router(
    service_dependency: Callable[..., CrudService],
    *,
    prefix: str,
    tags: Sequence[str],
    response_model: Type[BaseModel],
    router: Optional[APIRouter] = None,
) -> APIRouter:
    """REST-роутер поверх CRUD-сервиса.

    Тело запроса передается в сервис как есть: валидацию выполняет сервис,
    поэтому ошибки полей возвращаются с кодом 400. Отсутствующая запись
    превращается в 404.
    """
    router = router or APIRouter(prefix=prefix, tags=list(tags))

    @router.post("/", response_model=response_model, status_code=status.HTTP_201_CREATED)
    async def create_record(
        payload: Dict[str, Any] = Body(...),
        service: CrudService = Depends(service_dependency),
        ctx: RequestContext = Depends(get_request_context)
    ):
        """Создание записи"""
        return await service.create(payload, ctx)

    @router.get("/", response_model=List[response_model])
    async def list_records(
        request: Request,
        service: CrudService = Depends(service_dependency),
        ctx: RequestContext = Depends(get_request_context)
    ):
        """Список записей с фильтром по параметрам запроса"""
        return await service.find_all(service.build_filter(dict(request.query_params)), ctx)

    @router.get("/{record_id}", response_model=response_model)
    async def get_record(
        record_id: uuid.UUID,
        service: CrudService = Depends(service_dependency),
        ctx: RequestContext = Depends(get_request_context)
    ):
        return _found(await service.find_by_id(record_id, ctx))

    @router.put("/{record_id}", response_model=response_model)
    @router.patch("/{record_id}", response_model=response_model)
    async def update_record(
        record_id: uuid.UUID,
        payload: Dict[str, Any] = Body(...),
        service: CrudService = Depends(service_dependency),
        ctx: RequestContext = Depends(get_request_context)
    ):
        """Частичное обновление записи"""
        return _found(await service.update(record_id, payload, ctx))

    @router.delete("/{record_id}", response_model=response_model)
    async def delete_record(
        record_id: uuid.UUID,
        service: CrudService = Depends(service_dependency),
        ctx: RequestContext = Depends(get_request_context)
    ):
        """Удаление записи; возвращает удаленную запись"""
        return _found(await service.remove(record_id, ctx))

    return router
