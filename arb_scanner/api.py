# arb_scanner/api.py
import logging
from typing import Optional

from aiohttp import web

from .errors import StorageError
from .models import Category
from .storage import OpportunityRepository


class OpportunityController:
    """
    Read-only HTTP view over the opportunity database. Records are returned
    in stored order; sorting is left to the client.
    """
    def __init__(self, repository: OpportunityRepository, logger: Optional[logging.Logger] = None):
        self.repository = repository
        self.logger = logger or logging.getLogger("arb_scanner")

    async def get_all(self, request: web.Request) -> web.Response:
        try:
            data = await self.repository.get_all()
        except StorageError as e:
            return self._error(e)
        self.logger.info(f"[ALL] executable: {len(data['executable'])} | potential: {len(data['potential'])}")
        return web.json_response(data)

    async def get_executable(self, request: web.Request) -> web.Response:
        return await self._category(Category.EXECUTABLE)

    async def get_potential(self, request: web.Request) -> web.Response:
        return await self._category(Category.POTENTIAL)

    async def _category(self, category: Category) -> web.Response:
        try:
            data = await self.repository.get_all()
        except StorageError as e:
            return self._error(e)
        records = data[category.value]
        self.logger.info(f"{category.value}: {len(records)}")
        return web.json_response(records)

    def _error(self, error: Exception) -> web.Response:
        self.logger.error(f"Error while fetching opportunities: {error}")
        return web.json_response({"message": "Internal server error while fetching data."}, status=500)


@web.middleware
async def cors_middleware(request: web.Request, handler):
    response = await handler(request)
    response.headers["Access-Control-Allow-Origin"] = "*"
    return response


def create_app(repository: OpportunityRepository, logger: Optional[logging.Logger] = None) -> web.Application:
    app = web.Application(middlewares=[cors_middleware])
    controller = OpportunityController(repository, logger)
    app.router.add_get("/api/opportunities", controller.get_all)
    app.router.add_get("/api/opportunities/executable", controller.get_executable)
    app.router.add_get("/api/opportunities/potential", controller.get_potential)
    return app


def run_server(repository: OpportunityRepository, host: str, port: int, logger: Optional[logging.Logger] = None):
    logger = logger or logging.getLogger("arb_scanner")
    logger.info(f"🚀 API Server running at http://{host}:{port}")
    logger.info(f"   -> All:          http://{host}:{port}/api/opportunities")
    logger.info(f"   -> Executables:  http://{host}:{port}/api/opportunities/executable")
    logger.info(f"   -> Potentials:   http://{host}:{port}/api/opportunities/potential")
    web.run_app(create_app(repository, logger), host=host, port=port, print=None)
