import hashlib
import json
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from fellowship_backend.api.crud import create_db, get_id_db, list_db, update_db, delete_db
from typing import Annotated, Optional
from fellowship_backend.permissions.auth import get_current_principal
from fellowship_backend.database import get_db
from fellowship_backend.permissions.principal import Principal
from fellowship_backend.interface.base import EntityInterface
from fellowship_backend.redis_cache import get_redis_client
from aiocache import BaseCache
from fastapi import FastAPI, BackgroundTasks
from fastapi import Response

logger = logging.getLogger(__name__)

class CrudRouter:

    id_type = "id"

    path: str
    dto: EntityInterface

    def __init__(self, dto, endpoint: Optional[str] = None):
        self.dto = dto
        if endpoint == None:
            self.path = self.dto.endpoint
        else:
            self.path = endpoint

        self.router = APIRouter()

        self.on_created = []
        self.on_updated = []
        self.on_deleted = []

    @property
    def namespace(self) -> str:
        return f"{self.dto.model.__tablename__}:"

    def create(self):
        async def route(background_tasks: BackgroundTasks, principal: Annotated[Principal, Depends(get_current_principal)], entity: self.dto.create, cache: Annotated[BaseCache, Depends(get_redis_client)], db: Session = Depends(get_db)) -> self.dto.get:
            entity_created = await create_db(principal, db, entity, self.dto)

            await self._clear_entity_cache(cache)

            for task in self.on_created:
                background_tasks.add_task(task, entity_created, principal)

            return entity_created
        return route

    def get(self):
        async def route(principal: Annotated[Principal, Depends(get_current_principal)], id: int, cache: Annotated[BaseCache, Depends(get_redis_client)], db: Session = Depends(get_db)) -> self.dto.get:
            # cached per scope and policy, not per user
            cache_key = f"get:{principal.fingerprint()}:{id}"
            cached_result = await cache.get(cache_key, namespace=self.namespace)

            if cached_result:
                return self.dto.get.model_validate_json(cached_result)

            result = await get_id_db(principal, db, id, self.dto)

            await cache.set(cache_key, result.model_dump_json(), ttl=self.dto.cache_ttl, namespace=self.namespace)

            return result
        return route

    def list(self):
        async def route(principal: Annotated[Principal, Depends(get_current_principal)], cache: Annotated[BaseCache, Depends(get_redis_client)], response: Response, params: self.dto.query = Depends(), db: Session = Depends(get_db)) -> list[self.dto.list]:
            params_hash = hashlib.sha256(params.model_dump_json(exclude_none=True).encode()).hexdigest()
            cache_key = f"list:{principal.fingerprint()}:{params_hash}"

            cached_result = await cache.get(cache_key, namespace=self.namespace)
            if cached_result:
                cached_data = json.loads(cached_result)
                response.headers["X-Total-Count"] = str(cached_data.get("total", 0))
                return [self.dto.list.model_validate(item) for item in cached_data.get("items", [])]

            list_result, total = await list_db(principal, db, params, self.dto)
            response.headers["X-Total-Count"] = str(total)

            cache_data = {
                "items": [item.model_dump(mode='json') for item in list_result],
                "total": total
            }
            await cache.set(cache_key, json.dumps(cache_data), ttl=self.dto.cache_ttl, namespace=self.namespace)

            return list_result
        return route

    def update(self):
        async def route(background_tasks: BackgroundTasks, principal: Annotated[Principal, Depends(get_current_principal)], id: int, entity: self.dto.update, cache: Annotated[BaseCache, Depends(get_redis_client)], db: Session = Depends(get_db)) -> self.dto.get:
            entity_updated = update_db(principal, db, id, entity, self.dto)

            await self._clear_entity_cache(cache)

            for task in self.on_updated:
                background_tasks.add_task(task, entity_updated, principal)

            return entity_updated
        return route

    def delete(self):
        async def route(background_tasks: BackgroundTasks, principal: Annotated[Principal, Depends(get_current_principal)], id: int, cache: Annotated[BaseCache, Depends(get_redis_client)], db: Session = Depends(get_db)):

            entity_deleted = None
            if len(self.on_deleted) > 0:
                entity_deleted = await get_id_db(principal, db, id, self.dto, "delete")

            delete_db(principal, db, id, self.dto)

            await self._clear_entity_cache(cache)

            for task in self.on_deleted:
                background_tasks.add_task(task, entity_deleted, principal)

            return Response(status_code=status.HTTP_204_NO_CONTENT)

        return route

    def register_routes(self, app: FastAPI):

        scope_name = self.path.replace("/","").replace("_"," ").replace("-"," ")

        self.router.add_api_route("", self.create(), methods=["POST"],
                    status_code=status.HTTP_201_CREATED, name=f"{self.create.__name__} {scope_name.capitalize()}")
        self.router.add_api_route(f"/{{{CrudRouter.id_type}}}", self.get(), methods=["GET"],
                    status_code=status.HTTP_200_OK, name=f"{self.get.__name__} {scope_name.capitalize()}")
        self.router.add_api_route("", self.list(), methods=["GET"],
                    status_code=status.HTTP_200_OK, name=f"{self.list.__name__} {scope_name.capitalize()}")
        self.router.add_api_route(f"/{{{CrudRouter.id_type}}}", self.update(), methods=["PATCH"],
                    status_code=status.HTTP_200_OK, name=f"{self.update.__name__} {scope_name.capitalize()}")
        self.router.add_api_route(f"/{{{CrudRouter.id_type}}}", self.delete(), methods=["DELETE"],
                    status_code=status.HTTP_204_NO_CONTENT, name=f"{self.delete.__name__} {scope_name.capitalize()}")

        app.include_router(
            self.router,
            prefix=f"/{self.path}",
            tags=[scope_name]
        )

        return self

    async def _clear_entity_cache(self, cache: BaseCache):
        """Clear all cache entries for this entity type"""
        await cache.clear(namespace=self.namespace)
