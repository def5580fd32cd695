import time
import typing
from typing import List, Optional

from market_deployment.constants import PREDICTION_MARKET
from market_deployment.errors import DependencyUnresolvedError
from market_deployment.ledger import LedgerClient, Receipt
from market_deployment.manifest import RunRecord

ONE_DAY = 24 * 60 * 60

WIN_LOSS_MARKET = 1


class MarketData(typing.NamedTuple):
    game_id: str
    home_team: str
    away_team: str
    game_time: int
    market_type: int
    options: List[str]

    def as_args(self) -> list:
        return [
            self.game_id,
            self.home_team,
            self.away_team,
            self.game_time,
            self.market_type,
            list(self.options),
        ]


def sample_market(now: Optional[int] = None) -> MarketData:
    """A win/loss market for a game starting one day from now."""
    now = int(time.time()) if now is None else now
    return MarketData(
        game_id="NFL_2024_WEEK1_KC_VS_BAL",
        home_team="Kansas City Chiefs",
        away_team="Baltimore Ravens",
        game_time=now + ONE_DAY,
        market_type=WIN_LOSS_MARKET,
        options=["Chiefs Win", "Ravens Win"],
    )


def create_market(record: RunRecord, ledger: LedgerClient, market: MarketData) -> Receipt:
    """Creates a market on the prediction market contract of a completed deployment."""
    deployed = record.components.get(PREDICTION_MARKET)
    if deployed is None:
        raise DependencyUnresolvedError(PREDICTION_MARKET)
    if market.game_time <= int(time.time()):
        raise ValueError(f"Game {market.game_id} starts in the past")
    if len(market.options) < 2:
        raise ValueError(f"Market {market.game_id} needs at least two options")
    return ledger.call(
        deployed.address, deployed.contract_type, "createMarket", market.as_args()
    )
