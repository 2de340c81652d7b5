from app.models.base import Base  # noqa: F401
from app.models.currency_balance import CurrencyBalance  # noqa: F401
from app.models.harvest_cursor import HarvestCursor  # noqa: F401
from app.models.island import Island, IslandSize, OccupationStatus  # noqa: F401
from app.models.nation_treasury import NationTreasury  # noqa: F401
from app.models.player_profile import PlayerProfile  # noqa: F401
