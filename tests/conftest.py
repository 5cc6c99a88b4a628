from __future__ import annotations

import os
from types import SimpleNamespace
from typing import Any

import pytest
import requests

from page_oracle.connections import EvmConnection
from page_oracle.domain import ChainId


class FakeCall:
    def __init__(self, result: Any):
        self._result = result

    def call(self) -> Any:
        if isinstance(self._result, BaseException):
            raise self._result
        return self._result


class FakeFunctions:
    def __init__(self, results: dict[str, Any]):
        self._results = results

    def __getattr__(self, name: str):
        if name not in self._results:
            raise AttributeError(f"unexpected contract call {name}()")
        return lambda *args: FakeCall(self._results[name])


class FakeEth:
    def __init__(self, contracts: dict[str, dict[str, Any]], block_number: Any):
        self._contracts = {addr.lower(): fns for addr, fns in contracts.items()}
        self._block_number = block_number
        self.contract_calls: list[str] = []

    def contract(self, address: str, abi: list[dict]):
        self.contract_calls.append(address.lower())
        return SimpleNamespace(
            functions=FakeFunctions(self._contracts.get(address.lower(), {}))
        )

    @property
    def block_number(self) -> int:
        if isinstance(self._block_number, BaseException):
            raise self._block_number
        return self._block_number


class FakeWeb3:
    """Stands in for ``Web3`` with canned contract-call results."""

    def __init__(
        self, contracts: dict[str, dict[str, Any]] | None = None, block_number: Any = 1
    ):
        self.eth = FakeEth(contracts or {}, block_number)


class FakeResponse:
    def __init__(
        self, payload: Any = None, status_code: int = 200, invalid_json: bool = False
    ):
        self._payload = payload
        self.status_code = status_code
        self._invalid_json = invalid_json

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self) -> Any:
        if self._invalid_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


@pytest.fixture
def make_evm_connection():
    def _make(
        contracts: dict[str, dict[str, Any]] | None = None,
        *,
        chain: ChainId = ChainId.ETHEREUM,
        url: str = "https://rpc.test",
        block_number: Any = 1,
    ) -> EvmConnection:
        return EvmConnection(
            chain=chain,
            url=url,
            w3=FakeWeb3(contracts, block_number),  # type: ignore[arg-type]
            timeout=1.0,
        )

    return _make


@pytest.fixture
def lcd_routes(monkeypatch):
    """Route ``requests.get`` to canned responses keyed by full URL.

    Unknown URLs answer 404. Values may be exceptions, which are raised.
    """
    routes: dict[str, Any] = {}
    calls: list[str] = []

    def fake_get(url, *args, **kwargs):
        calls.append(url)
        response = routes.get(url, FakeResponse(status_code=404))
        if isinstance(response, BaseException):
            raise response
        return response

    monkeypatch.setattr(requests, "get", fake_get)
    return SimpleNamespace(routes=routes, calls=calls)


@pytest.fixture
def pool_payload():
    def _payload(pool_id: str, assets: list[tuple[str, int]]) -> FakeResponse:
        return FakeResponse(
            {
                "pool": {
                    "@type": "/osmosis.gamm.v1beta1.Pool",
                    "id": pool_id,
                    "pool_assets": [
                        {
                            "token": {"denom": denom, "amount": str(amount)},
                            "weight": "536870912000000",
                        }
                        for denom, amount in assets
                    ],
                }
            }
        )

    return _payload


@pytest.fixture
def latest_block():
    return FakeResponse({"block": {"header": {"height": "12345678"}}})


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep local config files and PAGE_ORACLE_* variables out of tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    for key in list(os.environ):
        if key.startswith("PAGE_ORACLE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def fake_web3():
    return FakeWeb3
