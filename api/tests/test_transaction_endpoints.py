"""
Tests for Transaction Endpoints

Tests the prepare endpoints end to end against the mock chain:
- /api/v1/transactions/prepare/native
- /api/v1/transactions/prepare/fungible
- /api/v1/transactions/prepare/non-fungible
- /api/v1/transactions/prepare/owner-add
- /api/v1/transactions/prepare/owner-remove
"""

import pytest
from fastapi.testclient import TestClient

from api.tests.assertions import (
    assert_error_response,
    assert_successful_response,
    assert_valid_hex_data,
    assert_valid_prepared_response,
)
from smart_wallet_offchain.contracts import ENS_DEPLOYMENTS, token_id_to_node
from smart_wallet_offchain.errors import NetworkTimeoutError, NetworkUnavailableError

from tests.factories import ACCOUNT, COLLECTION, OTHER, RECIPIENT, SIGNER, TOKEN


PREFIX = "/api/v1/transactions/prepare"


def body(**fields) -> dict:
    return {"signer_address": SIGNER, "account": ACCOUNT, **fields}


@pytest.mark.api
class TestPrepareNative:
    """Tests for native transfer preparation"""

    def test_prepare_native_transfer(self, client: TestClient):
        """Test a funded owner gets a complete execute plan"""
        response = client.post(f"{PREFIX}/native", json=body(recipient=RECIPIENT, amount=10**17))
        data = assert_successful_response(response, ["plan", "calls", "tx_params"])

        assert_valid_prepared_response(data)
        assert data["intent"] == "native_transfer"
        assert data["atomic"] is False
        assert data["plan"]["to"] == ACCOUNT
        assert data["plan"]["encoding"] == "execute"
        assert data["plan"]["gas_limit"] == 150_000
        assert data["plan"]["nonce"] == 7
        assert data["calls"][0] == {
            "label": "Transfer Native",
            "target": RECIPIENT,
            "value": str(10**17),
            "data": "0x",
            "kind": "native_transfer",
        }
        assert data["explorer_url"] == "https://etherscan.io"

    def test_prepare_native_insufficient_balance(self, client: TestClient):
        """Test a shortfall returns the structured precondition error"""
        response = client.post(f"{PREFIX}/native", json=body(recipient=RECIPIENT, amount=10**19))
        data = assert_error_response(response, 422, "insufficient_asset")

        assert data["detail"]["category"] == "precondition"
        assert data["detail"]["details"]["symbol"] == "ETH"
        assert data["detail"]["details"]["required"] == str(10**19)

    def test_prepare_native_invalid_recipient(self, client: TestClient, chain):
        """Test malformed addresses are rejected without chain access"""
        response = client.post(f"{PREFIX}/native", json=body(recipient="0x1234", amount=1))
        data = assert_error_response(response, 400, "encoding_error")

        assert data["detail"]["category"] == "input"
        assert chain.count() == 0

    def test_prepare_native_unconfigured_chain(self, client: TestClient):
        response = client.post(f"{PREFIX}/native", json=body(recipient=RECIPIENT, amount=1, chain_id=8453))
        assert_error_response(response, 400)

    def test_prepare_native_negative_amount(self, client: TestClient):
        response = client.post(f"{PREFIX}/native", json=body(recipient=RECIPIENT, amount=-1))
        assert response.status_code == 422


@pytest.mark.api
class TestPrepareFungible:
    """Tests for ERC-20 transfer preparation"""

    def test_prepare_fungible_transfer(self, client: TestClient, chain):
        chain.add_erc20(TOKEN, symbol="USDC", decimals=6, balances={ACCOUNT: 5_000_000})

        response = client.post(f"{PREFIX}/fungible", json=body(token=TOKEN, recipient=RECIPIENT, amount=1_000_000))
        data = assert_successful_response(response)

        assert_valid_prepared_response(data)
        assert data["calls"][0]["kind"] == "fungible_transfer"
        assert data["calls"][0]["target"] == TOKEN
        assert_valid_hex_data(data["calls"][0]["data"], selector="0xa9059cbb")

    def test_prepare_fungible_zero_balance(self, client: TestClient, chain):
        """Test a zero token balance fails before any gas estimation"""
        chain.add_erc20(TOKEN, symbol="USDC", decimals=6, balances={ACCOUNT: 0})

        response = client.post(f"{PREFIX}/fungible", json=body(token=TOKEN, recipient=RECIPIENT, amount=1_000_000))
        data = assert_error_response(response, 422, "insufficient_asset")

        assert data["detail"]["details"]["symbol"] == "USDC"
        assert data["detail"]["details"]["available"] == 0
        assert chain.count("eth_estimateGas") == 0

    def test_prepare_fungible_not_owner(self, client: TestClient, chain):
        chain.add_erc20(TOKEN, balances={ACCOUNT: 10})
        payload = body(token=TOKEN, recipient=RECIPIENT, amount=1)
        payload["signer_address"] = OTHER

        response = client.post(f"{PREFIX}/fungible", json=payload)
        assert_error_response(response, 422, "not_owner")


@pytest.mark.api
class TestPrepareNonFungible:
    """Tests for NFT and ENS transfer preparation"""

    def test_prepare_erc721_transfer(self, client: TestClient, chain):
        chain.add_erc721(COLLECTION, {5: ACCOUNT})

        response = client.post(f"{PREFIX}/non-fungible", json=body(collection=COLLECTION, recipient=RECIPIENT, token_id=5))
        data = assert_successful_response(response)

        assert_valid_prepared_response(data)
        assert data["calls"][0]["kind"] == "non_fungible_transfer"
        assert data["warnings"] == []

    def test_prepare_ens_transfer_is_atomic_batch(self, client: TestClient, chain):
        """Test an ENS name moves with one three-step executeBatch"""
        ens = ENS_DEPLOYMENTS[1]
        token_id = 424242
        chain.add_ens_name(ens, token_id, token_id_to_node(token_id), holder=ACCOUNT, resolver=ens.public_resolver)

        response = client.post(
            f"{PREFIX}/non-fungible", json=body(collection=ens.base_registrar, recipient=RECIPIENT, token_id=token_id)
        )
        data = assert_successful_response(response)

        assert_valid_prepared_response(data)
        assert data["atomic"] is True
        assert data["plan"]["encoding"] == "executeBatch"
        assert [call["label"] for call in data["calls"]] == [
            "Update ETH Record",
            "Update Manager (Registry)",
            "Transfer NFT Token (Owner)",
        ]
        assert [call["kind"] for call in data["calls"]] == ["unknown", "unknown", "non_fungible_transfer"]

    def test_prepare_transfer_with_foreign_sender_warns(self, client: TestClient, chain):
        chain.add_erc721(COLLECTION, {5: ACCOUNT})

        response = client.post(
            f"{PREFIX}/non-fungible",
            json=body(collection=COLLECTION, recipient=RECIPIENT, token_id=5, sender=OTHER),
        )
        data = assert_successful_response(response)

        assert len(data["warnings"]) == 1
        assert data["warnings"][0]["kind"] == "ownership_mismatch"
        assert data["warnings"][0]["declared_from"] == OTHER

    def test_prepare_nft_not_held(self, client: TestClient, chain):
        chain.add_erc721(COLLECTION, {5: OTHER})
        response = client.post(f"{PREFIX}/non-fungible", json=body(collection=COLLECTION, recipient=RECIPIENT, token_id=5))
        assert_error_response(response, 422, "insufficient_asset")


@pytest.mark.api
class TestPrepareOwnerManagement:
    """Tests for owner add/remove preparation"""

    def test_prepare_owner_add(self, client: TestClient):
        response = client.post(f"{PREFIX}/owner-add", json=body(new_owner=OTHER))
        data = assert_successful_response(response)

        assert_valid_prepared_response(data)
        assert data["calls"][0]["kind"] == "owner_add"
        assert data["calls"][0]["target"] == ACCOUNT

    def test_prepare_owner_remove(self, client: TestClient):
        slot = "0x" + "00" * 12 + SIGNER[2:].lower()
        response = client.post(f"{PREFIX}/owner-remove", json=body(index=0, owner_bytes=slot))
        data = assert_successful_response(response)

        assert data["calls"][0]["kind"] == "owner_remove"
        assert data["plan"]["step_labels"] == ["Remove Owner"]

    def test_prepare_owner_remove_requires_hex(self, client: TestClient):
        response = client.post(f"{PREFIX}/owner-remove", json=body(index=0, owner_bytes="not-hex"))
        assert_error_response(response, 400, "encoding_error")


@pytest.mark.api
class TestTransientErrors:
    """Tests for retry and 503 mapping of network failures"""

    def test_single_transient_failure_is_retried(self, client: TestClient, chain):
        chain.fail_next("eth_getCode", NetworkTimeoutError("eth_getCode", 10.0))

        response = client.post(f"{PREFIX}/native", json=body(recipient=RECIPIENT, amount=1))

        assert_successful_response(response)
        assert chain.count("eth_getCode") == 2

    def test_persistent_failure_returns_503(self, client: TestClient, chain):
        chain.fail_next("eth_getCode", NetworkUnavailableError("eth_getCode", "connection refused"), times=2)

        response = client.post(f"{PREFIX}/native", json=body(recipient=RECIPIENT, amount=1))
        data = assert_error_response(response, 503, "network_unavailable")

        assert data["detail"]["retryable"] is True
        assert data["detail"]["category"] == "transient"
