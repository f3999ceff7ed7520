"""Step Catalog: the ordered contracts to deploy and the bootstrap assets."""

from __future__ import annotations

from typing import Iterable, List, Tuple

from .models import ConstructorArg, DeploymentStep

BOOTSTRAP_ASSETS_HOOK = "bootstrap_assets"

ACCESS_CONTROLLER_KEY = "ACCESS_CONTROLLER_CONTRACT_ID"
ASSET_FACTORY_KEY = "ASSET_FACTORY"

BASE_ASSET = "BASE_ASSET"
YIELD_ASSET = "YIELD_ASSET"
RESERVE_ASSET_ID = "RESERVE_ASSET_ID"

BOOTSTRAP_ASSET_NAMES: Tuple[str, ...] = (BASE_ASSET, YIELD_ASSET, RESERVE_ASSET_ID)

_ACL = ConstructorArg("acl_contract", ACCESS_CONTROLLER_KEY)
_ALLOW_LIST = ConstructorArg("allow_list", "ALLOW_LIST")

STEP_CATALOG: Tuple[DeploymentStep, ...] = (
    DeploymentStep(
        order=1,
        name="Access Controller",
        artifact_name="AccessController",
        state_key=ACCESS_CONTROLLER_KEY,
    ),
    DeploymentStep(
        order=2,
        name="Asset Factory",
        artifact_name="AssetFactory",
        state_key=ASSET_FACTORY_KEY,
        constructor_args=(_ACL,),
        post_completion=BOOTSTRAP_ASSETS_HOOK,
    ),
    DeploymentStep(
        order=3,
        name="Cradle Account Factory",
        artifact_name="CradleAccountFactory",
        state_key="CRADLE_ACCOUNT_FACTORY_CONTRACT_ID",
        constructor_args=(_ACL, _ALLOW_LIST),
    ),
    DeploymentStep(
        order=4,
        name="Bridged Asset Issuer",
        artifact_name="BridgedAssetIssuer",
        state_key="BRIDGED_ASSET_ISSUER_CONTRACT_ID",
        inputs=("TREASURY_ADDRESS",),
        constructor_args=(
            ConstructorArg("treasury_address", "TREASURY_ADDRESS"),
            _ACL,
            _ALLOW_LIST,
            ConstructorArg("base_asset", BASE_ASSET),
        ),
    ),
    DeploymentStep(
        order=5,
        name="Native Asset Issuer",
        artifact_name="NativeAssetIssuer",
        state_key="NATIVE_ASSET_ISSUER_CONTRACT_ID",
        inputs=("TREASURY_ADDRESS",),
        constructor_args=(
            ConstructorArg("treasury_address", "TREASURY_ADDRESS"),
            _ACL,
            _ALLOW_LIST,
            ConstructorArg("base_asset", BASE_ASSET),
        ),
    ),
    DeploymentStep(
        order=6,
        name="Cradle Order Book Settler",
        artifact_name="CradleOrderBookSettler",
        state_key="CRADLE_ORDER_BOOK_SETTLER_CONTRACT_ID",
        inputs=("ORDER_BOOK_TREASURY",),
        constructor_args=(_ACL, ConstructorArg("order_book_treasury", "ORDER_BOOK_TREASURY")),
    ),
    DeploymentStep(
        order=7,
        name="Lending Pool Factory",
        artifact_name="LendingPoolFactory",
        state_key="ASSET_LENDING_POOL_FACTORY",
        constructor_args=(_ACL,),
    ),
    DeploymentStep(
        order=8,
        name="Listings Factory",
        artifact_name="CradleListingFactory",
        state_key="CRADLE_LISTING_FACTORY_CONTRACT_ID",
        constructor_args=(_ACL,),
    ),
)


def validate_catalog(steps: Iterable[DeploymentStep]) -> List[DeploymentStep]:
    """Return the steps sorted by order; orders and state keys must be unique, orders >= 1."""
    ordered = sorted(steps, key=lambda s: s.order)
    seen_orders = set()
    seen_keys = set()
    for step in ordered:
        if step.order < 1:
            raise ValueError(f"Step {step.name} has order {step.order}; orders start at 1")
        if step.order in seen_orders:
            raise ValueError(f"Duplicate step order {step.order}")
        if step.state_key in seen_keys:
            raise ValueError(f"Duplicate state key {step.state_key}")
        seen_orders.add(step.order)
        seen_keys.add(step.state_key)
    return ordered
