"""Currency codes understood by the island engine.

The economy backend has historically accepted several raw spellings for the
same currency (the soft currency shows up as "PS" and "PT", building costs use
lower-case material names).  Every code is resolved to its canonical form once,
at the economy-service boundary, through CURRENCY_ALIASES.
"""

# Soft currency (shop trades, hot spring fees, island upgrades, treasuries)
SOFT_CURRENCY = "PS"

# Resource currencies harvested from biome islands
RESOURCE_CURRENCIES: frozenset[str] = frozenset({"RR", "RG", "RY", "RB", "RT", "RS"})

# Construction materials
MATERIAL_CURRENCIES: frozenset[str] = frozenset({"gold", "wood", "stone", "iron"})

KNOWN_CURRENCIES: frozenset[str] = frozenset({SOFT_CURRENCY}) | RESOURCE_CURRENCIES | MATERIAL_CURRENCIES

CURRENCY_ALIASES: dict[str, str] = {
    "PT": "PS",
    "ps": "PS",
    "pt": "PS",
    "GOLD": "gold",
    "Gold": "gold",
    "WOOD": "wood",
    "Wood": "wood",
    "STONE": "stone",
    "Stone": "stone",
    "IRON": "iron",
    "Iron": "iron",
    "rr": "RR",
    "rg": "RG",
    "ry": "RY",
    "rb": "RB",
    "rt": "RT",
    "rs": "RS",
}


def resolve_currency(code: str) -> str:
    """Return the canonical code for ``code``; unknown codes (item ids) pass through."""
    raw = str(code or "").strip()
    return CURRENCY_ALIASES.get(raw, raw)


def is_known_currency(code: str) -> bool:
    return resolve_currency(code) in KNOWN_CURRENCIES
