"""API-level tests for the discovery HTTP endpoints."""

import pytest
from fastapi.testclient import TestClient

from deploy_discovery import server
from deploy_discovery.lib.config import ConfigurationError, Settings
from deploy_discovery.lib.models import ContractMetadata, EnrichedContract, ResultSummary
from deploy_discovery.lib.pipeline import DeploymentDiscovery
from deploy_discovery.lib.thirdweb_client import ThirdwebAPIError, ThirdwebClient
from deploy_discovery.server import create_app, create_app_from_env, error_response


class StubDiscovery:
    def __init__(self, summary=None, error=None):
        self.summary = summary
        self.error = error
        self.owners = []

    def query_deployed_contracts(self, owner_wallet, since=None):
        self.owners.append(owner_wallet)
        if self.error is not None:
            raise self.error
        return self.summary


class StubDeployer:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def deploy_erc20(self, name, symbol, description=None, default_admin=None):
        self.calls.append(("erc20", name, symbol, description, default_admin))
        if self.error is not None:
            raise self.error
        return "0x" + "1" * 40

    def deploy_erc721(self, name, symbol, description=None):
        self.calls.append(("erc721", name, symbol, description))
        return "0x" + "2" * 40


def test_health_endpoints():
    client = TestClient(create_app(discovery=StubDiscovery()))

    assert client.get("/health").json() == {"status": "ok"}
    root = client.get("/")
    assert root.status_code == 200
    assert "Welcome" in root.text


def test_query_deploys_returns_summary(owner_wallet):
    summary = ResultSummary(
        total_contracts=1,
        erc721_count=0,
        erc20_count=1,
        contracts=[EnrichedContract("0xaaa1", "ERC20", ContractMetadata("Rookie", "RKE", None))],
    )
    discovery = StubDiscovery(summary=summary)
    client = TestClient(create_app(discovery=discovery))

    response = client.get(f"/v1/deploys/{owner_wallet}")

    assert response.status_code == 200
    assert response.json() == {
        "totalContracts": 1,
        "erc721Count": 0,
        "erc20Count": 1,
        "contracts": [
            {
                "address": "0xaaa1",
                "tokenType": "ERC20",
                "metadata": {"name": "Rookie", "symbol": "RKE", "description": "N/A"},
            }
        ],
    }
    assert discovery.owners == [owner_wallet]


def test_blank_wallet_address_is_rejected():
    discovery = StubDiscovery()
    client = TestClient(create_app(discovery=discovery))

    response = client.get("/v1/deploys/%20")

    assert response.status_code == 400
    assert response.json() == {"error": {"code": 400, "message": "Wallet address is required"}}
    assert discovery.owners == []


def test_error_with_code_maps_to_400(owner_wallet):
    error = ThirdwebAPIError("Server error: 502", status_code=502)
    client = TestClient(create_app(discovery=StubDiscovery(error=error)))

    response = client.get(f"/v1/deploys/{owner_wallet}")

    assert response.status_code == 400
    assert response.json() == {"error": {"code": 502, "message": "Server error: 502"}}


def test_error_without_code_maps_to_generic_500(owner_wallet):
    error = ThirdwebAPIError("Request failed: connection reset")
    client = TestClient(create_app(discovery=StubDiscovery(error=error)))

    response = client.get(f"/v1/deploys/{owner_wallet}")

    assert response.status_code == 500
    assert response.json() == {"error": {"code": 500, "message": "Internal server error"}}


def test_error_response_ignores_non_integer_codes():
    class OddError(Exception):
        code = "E_ODD"

    assert error_response(OddError("odd")).status_code == 500
    assert error_response(RuntimeError("boom")).status_code == 500


def test_deploy_routes_without_deployer_return_501():
    client = TestClient(create_app(discovery=StubDiscovery()))

    response = client.post("/v1/deploy/erc20", json={"name": "Rookie", "symbol": "RKE"})

    assert response.status_code == 501
    assert response.json()["error"]["code"] == 501


def test_deploy_erc20_passes_body_to_deployer():
    deployer = StubDeployer()
    client = TestClient(create_app(discovery=StubDiscovery(), deployer=deployer))

    response = client.post(
        "/v1/deploy/erc20",
        json={"name": "Rookie", "symbol": "MIH", "description": "Make it happen", "defaultAdmin": "0xabc"},
    )

    assert response.status_code == 200
    assert response.json() == {"address": "0x" + "1" * 40}
    assert deployer.calls == [("erc20", "Rookie", "MIH", "Make it happen", "0xabc")]


def test_deploy_erc721_passes_body_to_deployer():
    deployer = StubDeployer()
    client = TestClient(create_app(discovery=StubDiscovery(), deployer=deployer))

    response = client.post("/v1/deploy/erc721", json={"name": "MyNFT", "symbol": "NFT"})

    assert response.status_code == 200
    assert response.json() == {"address": "0x" + "2" * 40}
    assert deployer.calls == [("erc721", "MyNFT", "NFT", None)]


def test_deploy_failure_is_mapped():
    deployer = StubDeployer(error=ThirdwebAPIError("insufficient funds", status_code=-32000))
    client = TestClient(create_app(discovery=StubDiscovery(), deployer=deployer))

    response = client.post("/v1/deploy/erc20", json={"name": "Rookie", "symbol": "RKE"})

    assert response.status_code == 400
    assert response.json() == {"error": {"code": -32000, "message": "insufficient funds"}}


def test_upstream_fetch_failure_maps_to_generic_500(deployer_wallet, owner_wallet):
    """
    Given a real discovery whose transaction listing fails with an upstream 503
    When querying deploys
    Then the response should be the generic 500, not a 400 echoing 503
    """

    # Given
    class UnavailableSource:
        def get_wallet_transactions(self, wallet, function_selector, page, limit, since=None):
            raise ThirdwebAPIError("Server error: 503", status_code=503)

    discovery = DeploymentDiscovery(UnavailableSource(), None, None, deployer_wallet)
    client = TestClient(create_app(discovery=discovery))

    # When
    response = client.get(f"/v1/deploys/{owner_wallet}")

    # Then
    assert response.status_code == 500
    assert response.json() == {"error": {"code": 500, "message": "Internal server error"}}


def test_error_with_zero_code_maps_to_generic_500(owner_wallet):
    """
    Given an error whose code is 0
    When it reaches the API boundary
    Then it should be reported as a generic 500
    """

    class ZeroCodeError(Exception):
        code = 0

    client = TestClient(create_app(discovery=StubDiscovery(error=ZeroCodeError("something odd"))))

    response = client.get(f"/v1/deploys/{owner_wallet}")

    assert response.status_code == 500
    assert response.json() == {"error": {"code": 500, "message": "Internal server error"}}
    assert error_response(ThirdwebAPIError("API error: odd", status_code=0)).status_code == 500


class TestCreateAppFromEnv:
    """Tests for building the app from settings at start-up."""

    @pytest.fixture(autouse=True)
    def clean_environment(self, monkeypatch, tmp_path):
        for name in ("THIRDWEB_CLIENT_ID", "THIRDWEB_SECRET_KEY"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.chdir(tmp_path)

    def test_missing_credentials_fail_before_serving(self):
        """
        Given no credentials in the environment
        When building the app from the environment
        Then ConfigurationError should be raised before any request is served
        """
        with pytest.raises(ConfigurationError, match="thirdweb_client_id"):
            create_app_from_env()

    def test_main_exits_with_error_without_credentials(self, monkeypatch, capsys):
        """
        Given no credentials in the environment
        When starting the server
        Then main should return 1 without starting uvicorn
        """
        # Given
        started = []
        monkeypatch.setattr(server.uvicorn, "run", lambda *args, **kwargs: started.append(args))

        # When
        exit_code = server.main()

        # Then
        assert exit_code == 1
        assert started == []
        assert "thirdweb_client_id" in capsys.readouterr().err

    def test_builds_discovery_from_settings(self, mock_client_id, mock_secret_key, deployer_wallet):
        """
        Given explicit settings
        When building the app
        Then the deploys route should be backed by a thirdweb discovery service
        """
        # Given
        settings = Settings(
            thirdweb_client_id=mock_client_id,
            thirdweb_secret_key=mock_secret_key,
            deployer_wallet=deployer_wallet,
        )

        # When
        app = create_app_from_env(settings)

        # Then
        assert isinstance(app.state.discovery, DeploymentDiscovery)
        assert isinstance(app.state.discovery.transactions, ThirdwebClient)
        assert app.state.deployer is None
        assert TestClient(app).get("/health").json() == {"status": "ok"}
