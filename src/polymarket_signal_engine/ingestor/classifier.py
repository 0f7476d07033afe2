"""Rule-table market classification.

All keyword and pattern matching used by the engine lives here, behind
``MarketClassifier``. The rules are plain data (``ClassificationRules``) so a
deployment can swap them without touching aggregation or scoring.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta

# Short-duration price markets that behave like coin flips.
GAMBLING_KEYWORDS: tuple[str, ...] = (
    "up or down",
    "bitcoin up or down",
    "ethereum up or down",
    "15m",
    "30m",
    "1h",
    "5m",
    "next 15 minutes",
    "next 30 minutes",
)

# Season-long and prop markets. Any hit disqualifies a market as a game.
FUTURES_KEYWORDS: tuple[str, ...] = (
    "win the", "winner", "championship", "super bowl winner", "world series winner",
    "stanley cup winner", "nba champion", "nfl champion", "mlb champion",
    "premier league winner", "premier league", "champions league winner",
    "win the 20", "win 20",
    "ncaa tournament winner", "march madness winner", "final four",
    "mvp", "most valuable", "rookie of the year", "cy young", "heisman",
    "ballon d'or", "dpoy", "defensive player", "coach of the year",
    "naismith", "player of the year",
    "win total", "season wins", "over/under wins", "regular season",
    "make the playoffs", "miss the playoffs", "playoff seed",
    "division winner", "conference winner", "win the division",
    "win the conference", "first pick", "draft",
    "big east", "big ten", "big 12", "acc", "sec", "pac-12",
    "passing yards", "rushing yards", "receiving yards", "touchdowns",
    "home runs", "batting average", "era", "strikeouts",
    "points per game", "assists per game", "rebounds per game",
    "goals scored", "clean sheets",
    "sign with", "trade to", "leave the", "join the", "transfer",
    "retire", "fired", "hired", "contract",
    "before", "by the end of", "this season", "this year",
    "all-star", "pro bowl", "hall of fame",
)

GAME_KEYWORDS: tuple[str, ...] = (
    "vs", "vs.", "@", "at",
    "spread", "moneyline", "money line", "ml",
    "over/under", "o/u", "total points", "total runs", "total goals",
    "game", "match", "bout", "fight",
)

# Words that mark a game keyword hit as a disguised futures market.
FUTURES_GUARD_WORDS: tuple[str, ...] = ("season", "winner", "champion")

GAME_SLUG_PATTERNS: tuple[str, ...] = (
    r"^(nfl|nba|mlb|nhl|ncaaf|ncaab|cbb|cfb)-[a-z]+-[a-z]+-\d{4}-\d{2}-\d{2}",
    r"^(ufc|mma)-[a-z]+-vs-[a-z]+-",
    r"\d{4}-\d{2}-\d{2}",
)

TEAM_VS_TITLE_PATTERN = r"\b[A-Z][a-z]+\s+(vs\.?|@|at)\s+[A-Z][a-z]+\b"

# Ordered (market type, title needles, slug needles) for games.
SPORT_MARKET_TYPES: tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...] = (
    ("sports-nba", ("nba",), ("nba-",)),
    ("sports-nfl", ("nfl",), ("nfl-",)),
    ("sports-mlb", ("mlb",), ("mlb-",)),
    ("sports-nhl", ("nhl",), ("nhl-",)),
    ("sports-ncaab", ("college basketball", "ncaab"), ("cbb-",)),
    ("sports-ncaaf", ("college football", "ncaaf"), ("cfb-",)),
    ("sports-ncaa", ("ncaa", "college"), ()),
    ("sports-mma", ("ufc", "mma"), ()),
    ("sports-soccer", ("soccer", "premier", "champions league"), ()),
)

# Ordered (market type, title needles) for everything that is not a game.
TOPIC_MARKET_TYPES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "politics",
        ("president", "election", "trump", "biden", "democrat", "republican",
         "governor", "senate", "congress"),
    ),
    ("crypto", ("bitcoin", "ethereum", "crypto", "btc", "eth", "sol", "doge")),
    ("finance", ("fed", "interest rate", "inflation", "stock", "s&p", "nasdaq")),
)

# (sport, slug prefixes, slug infixes)
SPORT_SLUG_RULES: tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...] = (
    ("nfl", ("nfl-",), ("-nfl-",)),
    ("nba", ("nba-",), ("-nba-",)),
    ("mlb", ("mlb-",), ("-mlb-",)),
    ("nhl", ("nhl-",), ("-nhl-",)),
    ("ncaab", ("cbb-", "ncaab-"), ("-cbb-", "college-basketball")),
    ("ncaaf", ("cfb-", "ncaaf-"), ("-cfb-", "college-football")),
    ("mma", ("ufc-", "mma-"), ()),
    ("epl", ("epl-",), ("premier-league",)),
    ("wta", ("wta-",), ()),
    ("atp", ("atp-",), ()),
    ("lol", ("lol-",), ()),
)

# Sport code to odds-provider sport key. None means known but unsupported.
SPORT_KEY_MAP: dict[str, str | None] = {
    "nfl": "americanfootball_nfl",
    "nba": "basketball_nba",
    "mlb": "baseball_mlb",
    "nhl": "icehockey_nhl",
    "ncaaf": "americanfootball_ncaaf",
    "cfb": "americanfootball_ncaaf",
    "ncaab": "basketball_ncaab",
    "cbb": "basketball_ncaab",
    "mma": "mma_mixed_martial_arts",
    "ufc": "mma_mixed_martial_arts",
    "epl": "soccer_epl",
    "ucl": "soccer_uefa_champions_league",
    "mls": "soccer_usa_mls",
    "wta": "tennis_wta_australian_open",
    "atp": "tennis_atp_australian_open",
    "lol": None,
    "csgo": None,
}

TEAM_ALIASES: dict[str, str] = {
    # NFL
    "patriots": "New England Patriots", "ne": "New England Patriots",
    "broncos": "Denver Broncos", "den": "Denver Broncos",
    "chiefs": "Kansas City Chiefs", "kc": "Kansas City Chiefs",
    "bills": "Buffalo Bills", "buf": "Buffalo Bills",
    "dolphins": "Miami Dolphins", "mia": "Miami Dolphins",
    "jets": "New York Jets", "nyj": "New York Jets",
    "ravens": "Baltimore Ravens", "bal": "Baltimore Ravens",
    "steelers": "Pittsburgh Steelers", "pit": "Pittsburgh Steelers",
    "bengals": "Cincinnati Bengals", "cin": "Cincinnati Bengals",
    "browns": "Cleveland Browns", "cle": "Cleveland Browns",
    "texans": "Houston Texans", "hou": "Houston Texans",
    "colts": "Indianapolis Colts", "ind": "Indianapolis Colts",
    "jaguars": "Jacksonville Jaguars", "jax": "Jacksonville Jaguars",
    "titans": "Tennessee Titans", "ten": "Tennessee Titans",
    "cowboys": "Dallas Cowboys", "dal": "Dallas Cowboys",
    "eagles": "Philadelphia Eagles", "phi": "Philadelphia Eagles",
    "giants": "New York Giants", "nyg": "New York Giants",
    "commanders": "Washington Commanders", "was": "Washington Commanders",
    "bears": "Chicago Bears", "chi": "Chicago Bears",
    "lions": "Detroit Lions", "det": "Detroit Lions",
    "packers": "Green Bay Packers", "gb": "Green Bay Packers",
    "vikings": "Minnesota Vikings", "min": "Minnesota Vikings",
    "falcons": "Atlanta Falcons", "atl": "Atlanta Falcons",
    "panthers": "Carolina Panthers", "car": "Carolina Panthers",
    "saints": "New Orleans Saints", "no": "New Orleans Saints",
    "buccaneers": "Tampa Bay Buccaneers", "tb": "Tampa Bay Buccaneers",
    "cardinals": "Arizona Cardinals", "ari": "Arizona Cardinals",
    "49ers": "San Francisco 49ers", "sf": "San Francisco 49ers",
    "seahawks": "Seattle Seahawks", "sea": "Seattle Seahawks",
    "rams": "Los Angeles Rams", "lar": "Los Angeles Rams",
    "chargers": "Los Angeles Chargers", "lac": "Los Angeles Chargers",
    "raiders": "Las Vegas Raiders", "lv": "Las Vegas Raiders",
    # NBA
    "lakers": "Los Angeles Lakers", "lal": "Los Angeles Lakers",
    "celtics": "Boston Celtics", "bos": "Boston Celtics",
    "warriors": "Golden State Warriors", "gsw": "Golden State Warriors",
    "bucks": "Milwaukee Bucks", "mil": "Milwaukee Bucks",
    "heat": "Miami Heat",
    "nuggets": "Denver Nuggets",
    "suns": "Phoenix Suns", "phx": "Phoenix Suns",
    "mavericks": "Dallas Mavericks",
    "clippers": "Los Angeles Clippers",
    "sixers": "Philadelphia 76ers", "76ers": "Philadelphia 76ers",
    "nets": "Brooklyn Nets", "bkn": "Brooklyn Nets",
    "knicks": "New York Knicks", "nyk": "New York Knicks",
    "raptors": "Toronto Raptors", "tor": "Toronto Raptors",
    "bulls": "Chicago Bulls",
    "cavaliers": "Cleveland Cavaliers", "cavs": "Cleveland Cavaliers",
    "pistons": "Detroit Pistons",
    "pacers": "Indiana Pacers",
    "hawks": "Atlanta Hawks",
    "hornets": "Charlotte Hornets", "cha": "Charlotte Hornets",
    "magic": "Orlando Magic", "orl": "Orlando Magic",
    "wizards": "Washington Wizards",
    "timberwolves": "Minnesota Timberwolves", "wolves": "Minnesota Timberwolves",
    "thunder": "Oklahoma City Thunder", "okc": "Oklahoma City Thunder",
    "blazers": "Portland Trail Blazers", "por": "Portland Trail Blazers",
    "jazz": "Utah Jazz", "uta": "Utah Jazz",
    "grizzlies": "Memphis Grizzlies", "mem": "Memphis Grizzlies",
    "pelicans": "New Orleans Pelicans", "nop": "New Orleans Pelicans",
    "spurs": "San Antonio Spurs", "sas": "San Antonio Spurs",
    "rockets": "Houston Rockets",
    "kings": "Sacramento Kings", "sac": "Sacramento Kings",
}

_SLUG_DATE_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_VS_TITLE_RE = re.compile(r"^(.+?)\s+vs\.?\s+(.+)$", re.IGNORECASE)
_SLUG_TEAMS_RE = re.compile(
    r"^(?:nfl|nba|mlb|nhl|ncaaf|ncaab|cbb|cfb)-([a-z0-9]+)-([a-z0-9]+)-\d{4}-\d{2}-\d{2}",
    re.IGNORECASE,
)


def slug_event_date(slug: str | None) -> date | None:
    """Return the ``YYYY-MM-DD`` date embedded in a market slug, if any."""
    match = _SLUG_DATE_RE.search(slug or "")
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def estimated_event_start(slug: str | None) -> datetime | None:
    """Estimate an event start as midnight UTC at the end of the slug date.

    Most slugs carry the US local date of an evening game, which lands on or
    just before 00:00 UTC of the following day.
    """
    event_date = slug_event_date(slug)
    if event_date is None:
        return None
    return datetime.combine(event_date, time(0), tzinfo=UTC) + timedelta(days=1)


@dataclass(frozen=True)
class MarketClassification:
    """Result of classifying a market."""

    is_game: bool
    market_type: str
    reason: str


@dataclass(frozen=True)
class ClassificationRules:
    """Keyword and pattern tables used by ``MarketClassifier``."""

    gambling_keywords: tuple[str, ...] = GAMBLING_KEYWORDS
    futures_keywords: tuple[str, ...] = FUTURES_KEYWORDS
    game_keywords: tuple[str, ...] = GAME_KEYWORDS
    futures_guard_words: tuple[str, ...] = FUTURES_GUARD_WORDS
    game_slug_patterns: tuple[str, ...] = GAME_SLUG_PATTERNS
    team_vs_title_pattern: str = TEAM_VS_TITLE_PATTERN
    sport_market_types: tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...] = (
        SPORT_MARKET_TYPES
    )
    topic_market_types: tuple[tuple[str, tuple[str, ...]], ...] = TOPIC_MARKET_TYPES
    sport_slug_rules: tuple[tuple[str, tuple[str, ...], tuple[str, ...]], ...] = (
        SPORT_SLUG_RULES
    )
    sport_keys: dict[str, str | None] = field(default_factory=lambda: dict(SPORT_KEY_MAP))
    team_aliases: dict[str, str] = field(default_factory=lambda: dict(TEAM_ALIASES))


DEFAULT_RULES = ClassificationRules()


class MarketClassifier:
    """Pure market classification over a ``ClassificationRules`` table.

    Example:
        ```python
        classifier = MarketClassifier()
        classifier.detect_market_type("Lakers vs. Celtics", "nba-lal-bos-2026-01-28")
        # -> "sports-nba"
        classifier.is_gambling("Bitcoin Up or Down - 15m")
        # -> True
        ```
    """

    def __init__(self, rules: ClassificationRules = DEFAULT_RULES) -> None:
        self._rules = rules
        self._slug_patterns = tuple(re.compile(p, re.IGNORECASE) for p in rules.game_slug_patterns)
        self._team_vs_title = re.compile(rules.team_vs_title_pattern)

    @property
    def rules(self) -> ClassificationRules:
        """Rule table in use."""
        return self._rules

    def is_gambling(self, title: str | None) -> bool:
        """True for short-duration coin-flip markets."""
        if not title:
            return False
        lowered = title.lower()
        return any(kw in lowered for kw in self._rules.gambling_keywords)

    def classify(self, title: str | None, slug: str | None) -> MarketClassification:
        """Decide whether a market is an actual game rather than a future or prop."""
        title = title or ""
        title_lower = title.lower()
        slug_lower = (slug or "").lower()

        for keyword in self._rules.futures_keywords:
            if keyword in title_lower:
                return MarketClassification(
                    is_game=False,
                    market_type="futures",
                    reason=f'Contains futures keyword: "{keyword}"',
                )

        for pattern in self._slug_patterns:
            if pattern.search(slug_lower):
                return MarketClassification(
                    is_game=True,
                    market_type="game",
                    reason="Matches game slug pattern",
                )

        guarded = any(word in title_lower for word in self._rules.futures_guard_words)
        if not guarded:
            for keyword in self._rules.game_keywords:
                if keyword in title_lower:
                    return MarketClassification(
                        is_game=True,
                        market_type="game",
                        reason=f'Contains game keyword: "{keyword}"',
                    )

        if self._team_vs_title.search(title):
            return MarketClassification(
                is_game=True,
                market_type="game",
                reason="Contains team vs team pattern",
            )

        return MarketClassification(
            is_game=False,
            market_type="other",
            reason="No game indicators found",
        )

    def is_sports_game(self, title: str | None, slug: str | None = None) -> bool:
        """True only for actual games."""
        return self.classify(title, slug).is_game

    def detect_market_type(self, title: str | None, slug: str | None = None) -> str:
        """Map a market to a learning category such as ``sports-nba`` or ``politics``."""
        if not title:
            return "other"
        title_lower = title.lower()
        slug_lower = (slug or "").lower()

        classification = self.classify(title, slug)
        if classification.is_game:
            for market_type, title_needles, slug_needles in self._rules.sport_market_types:
                if any(n in title_lower for n in title_needles) or any(
                    n in slug_lower for n in slug_needles
                ):
                    return market_type
            return "sports-other"

        if classification.market_type == "futures":
            return "sports-futures"

        for market_type, needles in self._rules.topic_market_types:
            if any(n in title_lower for n in needles):
                return market_type
        return "other"

    def infer_teams(self, title: str | None) -> tuple[str, str] | None:
        """Split a ``"<A> vs <B>"`` title into its two sides."""
        match = _VS_TITLE_RE.match((title or "").strip())
        if not match:
            return None
        return match.group(1).strip(), match.group(2).strip()

    def detect_sport(self, slug: str | None) -> str | None:
        """Sport code encoded in a slug prefix (``nba``, ``nfl``, ...)."""
        slug_lower = (slug or "").lower()
        if not slug_lower:
            return None
        for sport, prefixes, infixes in self._rules.sport_slug_rules:
            if slug_lower.startswith(prefixes) or any(i in slug_lower for i in infixes):
                return sport
        return None

    def sport_key(self, sport: str | None) -> str | None:
        """Odds-provider sport key, or None when the sport has no score source."""
        if not sport:
            return None
        return self._rules.sport_keys.get(sport.lower())

    def extract_teams_from_slug(self, slug: str | None) -> tuple[str, str] | None:
        """Return ``(away, home)`` team codes from a ``league-away-home-date`` slug."""
        match = _SLUG_TEAMS_RE.match(slug or "")
        if not match:
            return None
        return match.group(1).lower(), match.group(2).lower()

    def team_full_name(self, code: str) -> str:
        """Expand a team code or nickname to its full name when known."""
        if not code:
            return code
        return self._rules.team_aliases.get(code.lower(), code)
