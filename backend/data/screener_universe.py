"""
Options Screener Universe - Static Curated Lists
================================================
Source: liquid optionable names, grouped by theme (curated, not scraped)

This list is versioned and checked into repo.
Updates should be done manually via PR review.

PRICE TIERS:
- all:        UNDER_50_STOCKS + PREMIUM_STOCKS, no price ceiling
- under25:    UNDER_50_STOCKS, ceiling $25
- under50:    UNDER_50_STOCKS, ceiling $50
- verified50: same as under50

The lists are membership hints, not guarantees: the live quote decides
whether a symbol passes the price gate.
"""
from typing import Dict, Iterable, List, Optional

UNDER_50_STOCKS = [
    # Banks & Finance
    "BAC", "WFC", "C", "USB", "PNC", "TFC", "COF", "KEY", "RF", "FITB",
    "ZION", "CMA", "HBAN", "CFG", "WAL", "MTB", "SCHW", "STT", "BK", "NTRS",
    "SYF", "ALLY", "EWBC", "WTFC", "ONB", "FHN", "FULT",

    # Blue Chip Dividend
    "F", "GE", "T", "VZ", "KO", "PFE", "MO", "PM", "BTI", "SIRI",
    "KMI", "ET", "ENB", "EPD", "MPLX", "WMB", "TRP", "PAA", "INTC", "CSCO",

    # Energy & Oil
    "XOM", "CVX", "BP", "COP", "EOG", "OXY", "SLB", "HAL", "BKR", "PSX",
    "APA", "DVN", "CNX", "AR", "SM", "NOG", "RRC", "FANG", "EQT", "CRC",
    "MTDR", "PBF", "VLO", "OVV", "PR", "CTRA", "MPC", "OKE", "TRGP", "LNG",

    # Biotech & Pharma
    "BMY", "GILD", "TAK", "GSK", "SNY", "TEVA", "MRK", "BIIB", "HALO", "EXEL",
    "ARWR", "TGTX", "NTLA", "BEAM", "CRSP", "PACB", "FATE", "RXRX", "BCRX", "DVAX",
    "NVAX", "MRNA", "BNTX", "XBI", "IBB",

    # REITs
    "O", "STAG", "NNN", "WPC", "ADC", "EPR", "MPW", "OHI", "VICI", "NLY",
    "AGNC", "ARCC", "MAIN", "PSEC", "BXMT", "PMT", "CIM", "IRM", "UDR", "CUBE",

    # Retail & Consumer
    "GPS", "ANF", "AEO", "COTY", "ELF", "CROX", "FL", "KR", "M", "KSS",
    "URBN", "JWN", "VSCO", "DG", "DLTR", "BBY",

    # Food & Beverage
    "KO", "PEP", "MDLZ", "GIS", "K", "CPB", "CAG", "HRL", "TSN", "KDP",

    # Technology
    "HPQ", "WDC", "MU", "AMAT", "MCHP", "SWKS", "QRVO", "MRVL", "VIAV", "ORCL",
    "DBX", "BOX", "EA",

    # Communications & Media
    "CMCSA", "FOXA", "PARA", "WBD", "AMC", "CNK", "SNAP", "PINS", "ROKU", "FUBO",
    "LYV", "MTCH",

    # Airlines & Travel
    "AAL", "UAL", "DAL", "LUV", "ALK", "JBLU", "SKYW", "CCL", "RCL", "NCLH",
    "EXPE", "TRIP", "ABNB",

    # ETFs
    "IWM", "XLF", "XLE", "XLU", "XLI", "XLP", "XLB", "XRT", "GDX", "SLV",
    "EEM", "FXI", "EWZ", "VEA", "VWO", "TLT", "HYG", "JNK", "GDXJ", "URA",
    "EFA", "IEMG", "SOXL", "TQQQ", "SQQQ",

    # High Volatility
    "GME", "BB", "NOK", "PLTR", "LCID", "RIVN", "HOOD", "SOFI", "UPST", "AFRM",
    "PYPL", "PTON", "PENN", "DKNG", "LAZR", "PLUG", "SNDL",

    # EV & Clean Energy
    "NIO", "XPEV", "LI", "GM", "FCEL", "BLDP", "BE", "CHPT", "BLNK", "RUN",
    "CSIQ", "JKS", "ICLN", "TAN",

    # Utilities
    "NEE", "DUK", "SO", "AEP", "EXC", "PEG", "XEL", "ES", "ED", "FE",
    "AES", "NI", "PPL", "CNP", "PCG",

    # Healthcare
    "CVS", "CNC", "BSX", "BAX", "TDOC", "HOLX",

    # Industrial & Transportation
    "CSX", "OTIS", "CARR", "HWM", "UBER", "LYFT", "DASH",

    # Cannabis
    "TLRY", "CGC", "ACB", "CRON", "MSOS",

    # Mining & Materials
    "NEM", "GOLD", "KGC", "HL", "PAAS", "AG", "EGO", "FCX", "TECK", "VALE",
    "CLF", "X", "AA", "MT",

    # Chinese ADRs
    "BABA", "JD", "PDD", "BIDU", "TME", "BEKE", "IQ", "VIPS", "BILI", "TAL",
    "EDU", "FUTU",

    # Crypto & Fintech
    "COIN", "MARA", "RIOT", "CLSK", "HUT", "BITF", "MSTR",

    # Gaming & Entertainment
    "RBLX", "U", "MGM", "LVS", "WYNN", "CZR",

    # Homebuilders
    "KBH", "TOL", "LEN", "DHI", "PHM",
]

# Mix of prices, many above $50
PREMIUM_STOCKS = [
    "AAPL", "MSFT", "GOOGL", "AMZN", "TSLA", "META", "NVDA", "AMD", "NFLX", "DIS",
    "CRM", "ADBE", "SQ", "SHOP", "DOCU", "SNOW", "NET", "CRWD", "ZS", "DDOG",
    "MDB", "SPY", "QQQ", "VOO", "VTI", "GLD", "ARKK", "ARKG", "ARKF", "ARKW",
]

SECTOR_UNIVERSES: Dict[str, List[str]] = {
    "finance": [
        "BAC", "WFC", "C", "USB", "PNC", "TFC", "COF", "KEY", "RF", "FITB",
        "ZION", "CMA", "HBAN", "CFG", "WAL", "MTB",
        "O", "STAG", "NNN", "WPC", "ADC", "EPR", "MPW", "OHI", "IRM", "UDR",
    ],
    "energy": [
        "XOM", "CVX", "BP", "COP", "EOG", "OXY", "SLB", "HAL", "BKR", "PSX",
        "APA", "DVN", "CNX", "AR", "SM", "NOG", "RRC", "FANG", "EQT", "VLO",
        "KMI", "ET", "ENB", "EPD", "MPLX", "WMB", "TRP", "PAA",
    ],
    "biotech": [
        "PFE", "BMY", "GILD", "TAK", "GSK", "NVO", "SNY", "TEVA", "ABBV", "MRK",
        "BIIB", "AMGN", "VRTX", "REGN", "INCY", "BMRN", "SRPT", "HALO", "EXEL", "ARWR",
        "NTLA", "BEAM", "CRSP", "XBI", "IBB",
    ],
    "tech": [
        "INTC", "CSCO", "IBM", "HPQ", "WDC", "STX", "MU", "QCOM", "TXN", "AMAT",
        "MCHP", "LRCX", "KLAC", "MPWR", "SWKS", "QRVO", "MRVL", "AMD", "NVDA", "TSM",
        "AVGO", "ON", "ADI", "NXPI",
    ],
    "consumer": [
        "TGT", "COST", "HD", "LOW", "NKE", "SBUX", "MCD", "DG", "FIVE", "BBY",
        "GPS", "ANF", "AEO", "COTY", "ELF", "ULTA", "LULU", "DECK", "CROX",
        "F", "GE", "T", "VZ", "KO", "MO", "PM", "BTI", "SIRI",
    ],
    "industrial": [
        "NEM", "GOLD", "KGC", "HL", "PAAS", "AG", "EGO", "MTRN",
        "FCX", "SCCO", "TECK", "BHP", "RIO", "VALE", "CLF", "X", "NUE", "STLD",
    ],
    "crypto": [
        "COIN", "HOOD", "SOFI", "AFRM", "SQ", "PYPL", "LC", "UPST", "OPEN", "RBLX",
        "MARA", "RIOT", "CAN", "BTBT", "MSTR",
    ],
}

PRICE_TIER_CEILINGS: Dict[str, Optional[float]] = {
    "all": None,
    "under25": 25.0,
    "under50": 50.0,
    "verified50": 50.0,
}


def normalize_symbols(symbols: Iterable[str]) -> List[str]:
    """Strip, upper-case and de-duplicate, keeping first-seen order."""
    cleaned = (s.strip().upper() for s in symbols if s and s.strip())
    return list(dict.fromkeys(cleaned))


def resolve_price_ceiling(price_filter: str, max_stock_price: Optional[float] = None) -> Optional[float]:
    """An explicit positive max_stock_price overrides the tier's ceiling."""
    if max_stock_price is not None and max_stock_price > 0:
        return max_stock_price
    return PRICE_TIER_CEILINGS.get(price_filter, 50.0)


def resolve_universe(
    symbols: Optional[Iterable[str]] = None,
    price_filter: str = "under50",
    sector: str = "all",
) -> List[str]:
    """
    Resolve the symbols to screen.

    Explicit symbols win. Otherwise a sector list (when sector is not "all"),
    otherwise the default list of the price tier.
    """
    if symbols:
        explicit = normalize_symbols(symbols)
        if explicit:
            return explicit

    if sector and sector != "all":
        return normalize_symbols(SECTOR_UNIVERSES[sector])

    if price_filter == "all":
        return normalize_symbols(UNDER_50_STOCKS + PREMIUM_STOCKS)
    return normalize_symbols(UNDER_50_STOCKS)
