"""FastAPI app factory for the deployed-contract discovery API."""

import logging
import sys
from typing import Optional, Protocol

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from deploy_discovery.lib.config import ConfigurationError, Settings, configure_logging, load_settings
from deploy_discovery.lib.pipeline import DeploymentDiscovery, create_discovery


logger = logging.getLogger(__name__)


class ContractDeployer(Protocol):
    """Deploys factory contracts and returns their addresses."""

    def deploy_erc20(
        self,
        name: str,
        symbol: str,
        description: Optional[str] = None,
        default_admin: Optional[str] = None,
    ) -> str: ...

    def deploy_erc721(self, name: str, symbol: str, description: Optional[str] = None) -> str: ...


class DeployERC20Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    symbol: str
    description: Optional[str] = None
    default_admin: Optional[str] = Field(default=None, alias="defaultAdmin")


class DeployERC721Request(BaseModel):
    name: str
    symbol: str
    description: Optional[str] = None


def get_discovery(request: Request) -> DeploymentDiscovery:
    """Discovery service the app was created with."""
    return request.app.state.discovery


def get_deployer(request: Request) -> Optional[ContractDeployer]:
    """Contract deployer the app was created with, if any."""
    return request.app.state.deployer


def error_body(code: int, message: str) -> dict:
    return {"error": {"code": code, "message": message}}


def error_response(exc: Exception) -> JSONResponse:
    """
    Map an exception to an error response.

    Errors carrying a non-zero numeric code and a message are client errors
    (400); anything else is reported as a generic 500.
    """
    code = getattr(exc, "code", None)
    message = str(exc)
    if isinstance(code, int) and not isinstance(code, bool) and code and message:
        return JSONResponse(error_body(code, message), status_code=400)
    return JSONResponse(error_body(500, "Internal server error"), status_code=500)


def deployment_not_configured() -> JSONResponse:
    return JSONResponse(error_body(501, "Contract deployment is not configured"), status_code=501)


health_router = APIRouter(tags=["health"])


@health_router.get("/", response_class=PlainTextResponse)
def welcome():
    return "Welcome to the deploy discovery API"


@health_router.get("/health")
def health():
    return {"status": "ok"}


deploys_router = APIRouter(prefix="/v1/deploys", tags=["deploys"])


@deploys_router.get("/{wallet_address}")
def query_deploys(
    wallet_address: str,
    discovery: DeploymentDiscovery = Depends(get_discovery),
):
    """List factory deployments owned by a wallet."""
    if not wallet_address.strip():
        return JSONResponse(error_body(400, "Wallet address is required"), status_code=400)

    try:
        summary = discovery.query_deployed_contracts(wallet_address)
    except Exception as exc:
        logger.exception("Error querying deployed contracts for %s", wallet_address)
        return error_response(exc)

    return summary.to_dict()


deploy_router = APIRouter(prefix="/v1/deploy", tags=["deploy"])


@deploy_router.post("/erc20")
def deploy_erc20(
    request: DeployERC20Request,
    deployer: Optional[ContractDeployer] = Depends(get_deployer),
):
    """Deploy an ERC20 token contract."""
    if deployer is None:
        return deployment_not_configured()

    try:
        address = deployer.deploy_erc20(
            name=request.name,
            symbol=request.symbol,
            description=request.description,
            default_admin=request.default_admin,
        )
    except Exception as exc:
        logger.exception("Error deploying ERC20 contract")
        return error_response(exc)

    return {"address": address}


@deploy_router.post("/erc721")
def deploy_erc721(
    request: DeployERC721Request,
    deployer: Optional[ContractDeployer] = Depends(get_deployer),
):
    """Deploy an ERC721 drop contract."""
    if deployer is None:
        return deployment_not_configured()

    try:
        address = deployer.deploy_erc721(
            name=request.name,
            symbol=request.symbol,
            description=request.description,
        )
    except Exception as exc:
        logger.exception("Error deploying ERC721 contract")
        return error_response(exc)

    return {"address": address}


def create_app(
    discovery: DeploymentDiscovery,
    deployer: Optional[ContractDeployer] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        discovery: Discovery service backing the deploys route.
        deployer: Contract deployer backing the deploy routes.

    Returns:
        Configured FastAPI instance.
    """
    app = FastAPI(title="Deploy Discovery API", version="0.1")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
    )
    app.include_router(health_router)
    app.include_router(deploys_router)
    app.include_router(deploy_router)

    app.state.discovery = discovery
    app.state.deployer = deployer

    return app


def create_app_from_env(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app from settings, loading them from the environment if not given.

    Settings are validated before the app exists, so missing credentials stop
    start-up instead of failing the first request. Usable as a uvicorn
    factory: ``uvicorn --factory deploy_discovery.server:create_app_from_env``.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    if settings is None:
        settings = load_settings()
    return create_app(discovery=create_discovery(settings))


def main() -> int:
    """Load settings, then serve the API until interrupted."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    configure_logging(settings.log_level)
    uvicorn.run(create_app_from_env(settings), host=settings.host, port=settings.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
