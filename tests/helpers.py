"""
helpers.py - Builders and comparisons shared by the stableledger tests

- A price oracle with USDT at 0.5, USDC at 1 and DAI at 2 dollars
- Collateral tokens (18 decimals)
- An engine with all three tokens registered
- engine_state() for before/after comparisons
"""

from stableledger import (
    RiskParameters,
    StablecoinEngine,
    StaticPriceOracle,
    Token,
)

# One whole token / stable unit (18 decimals) and one oracle dollar (8 decimals).
E18 = 10 ** 18
E8 = 10 ** 8

ADMIN = "admin"
TREASURY = "treasury"


def usd(price: float) -> int:
    """Oracle price for a dollar amount, e.g. usd(0.5) -> 50_000_000."""
    return round(price * E8)


def make_tokens():
    return {
        "USDT": Token("0xusdt", "USDT", "Tether USD", 18),
        "USDC": Token("0xusdc", "USDC", "USD Coin", 18),
        "DAI": Token("0xdai", "DAI", "Dai Stablecoin", 18),
    }


def make_oracle(usdt: float = 0.5, usdc: float = 1.0, dai: float = 2.0) -> StaticPriceOracle:
    return StaticPriceOracle({
        "USDT/USD": usd(usdt),
        "USDC/USD": usd(usdc),
        "DAI/USD": usd(dai),
    })


def make_engine(params: RiskParameters = None, oracle: StaticPriceOracle = None, **kwargs) -> StablecoinEngine:
    """Engine with USDT, USDC and DAI accepted as collateral."""
    engine = StablecoinEngine(
        ADMIN,
        params if params is not None else RiskParameters(80, 1500, 120),
        TREASURY,
        **kwargs,
    )
    oracle = oracle if oracle is not None else make_oracle()
    for token in make_tokens().values():
        engine.add_token_adapter(ADMIN, token, oracle)
    return engine


def fund(engine: StablecoinEngine, user: str, token: Token, whole_units: int) -> None:
    """Mint collateral tokens to a user's wallet on the token ledger."""
    engine.token_ledger.mint(token.address, user, whole_units * E18)


def set_price(oracle: StaticPriceOracle, symbol: str, price: float) -> None:
    oracle.set_value(f"{symbol}/USD", usd(price))


def engine_state(engine: StablecoinEngine) -> dict:
    """Everything observable about an engine."""
    users = engine.all_debtors()
    return {
        "params": engine.risk_parameters,
        "withdrawable": engine.withdrawable_address,
        "time": engine.current_time,
        "symbols": engine.token_symbols(),
        "adapters": [(a.token, a.oracle, a.symbol_key) for a in engine.token_adapters()],
        "debtors": users,
        "balances": {u: engine.user_token_balances(u) for u in users},
        "events": {u: engine.debt_events(u) for u in users},
        "log": engine.liquidation_log(),
        "wallets": {
            w: engine.token_ledger.wallet_balances(w)
            for w in list(engine.token_ledger.balances)
        },
        "txs": len(engine.token_ledger.transaction_log),
    }
