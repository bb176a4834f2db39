from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HOST = "qxbroker.com"
DEFAULT_URL = f"wss://ws2.{DEFAULT_HOST}/socket.io/?EIO=3&transport=websocket"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Candle buffer and indicator window bounds
MAX_CANDLES = 1000
MAX_PRICES = 100
INDICATOR_WINDOW = 100
HISTORY_LOOKBACK_PERIODS = 100

# Polling contract for "wait for async data" calls (seconds)
CANDLE_POLL_INTERVAL = 0.1
CANDLE_WAIT_TIMEOUT = 10.0
HISTORY_REQUEST_DELAY = 0.2

TIMEFRAMES: dict[str, int] = {
    "M1": 60,
    "M5": 300,
    "M15": 900,
    "M30": 1800,
    "H1": 3600,
    "H2": 7200,
    "H4": 14400,
    "D1": 86400,
}

VALID_PERIODS = (5, 10, 15, 30, 60, 120, 300, 600, 900, 1800, 3600, 7200, 14400, 86400)

# Sent right after the transport opens
PRIMING_EVENTS = ("tick", "indicator/list", "drawing/load", "pending/list")

DEFAULT_INDICATOR_PARAMS: dict[str, dict[str, float]] = {
    "RSI": {"period": 14},
    "MACD": {"fast_period": 12, "slow_period": 26, "signal_period": 9},
    "BOLLINGER": {"period": 20, "std": 2},
    "STOCHASTIC": {"k_period": 14, "d_period": 3},
    "ADX": {"period": 14},
    "ATR": {"period": 14},
    "SMA": {"period": 20},
    "EMA": {"period": 20},
    "ICHIMOKU": {"tenkan_period": 9, "kijun_period": 26, "senkou_b_period": 52},
}


class ConnectionConfig(BaseSettings):
    """Connection parameters consumed once when the supervisor is built.

    Values can be overridden with ``MARKETSTREAM_*`` environment variables,
    e.g. ``MARKETSTREAM_RECONNECT_ATTEMPTS=3``.
    """

    url: str = DEFAULT_URL
    reconnect: bool = True
    reconnect_attempts: int = 5
    reconnect_delay_ms: int = 5000
    debug: bool = False
    ping_interval: float = 25.0
    connect_timeout: float = 10.0
    is_demo: bool = True
    user_agent: str = DEFAULT_USER_AGENT

    model_config = SettingsConfigDict(env_prefix="MARKETSTREAM_")

    @property
    def reconnect_delay(self) -> float:
        return self.reconnect_delay_ms / 1000
