# Configurations for the BTC DCA calculator
import os
from datetime import datetime, timezone

from dotenv import load_dotenv

load_dotenv()

# Configuration for the market data feed
COINGECKO_BASE_URL = os.getenv("COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3")
HISTORY_DAYS = 200  # number of daily prices requested by default
MIN_HISTORY_POINTS = 30  # series shorter than this are rejected
RETRIES = 3  # number of retries for API requests
BACK_OFF_FACTOR = 2  # exponential backoff factor for retries in seconds
REQUEST_TIMEOUT_S = 10  # per-request timeout in seconds

# Configuration for the deviation ratio strategy
SMA_WINDOW = 200  # number of daily prices averaged for the SMA
MIN_MULTIPLIER = 0.5  # multiplier applied at risk score 1
MAX_MULTIPLIER = 1.5  # multiplier applied at risk score 0

# Configuration for the tanh momentum strategy
MOMENTUM_WINDOW = 30  # days of price change fed into tanh
MOMENTUM_DIVISOR = 20  # percent change that maps to tanh(1)

# Configuration for the cycle + liquidity blend strategy
HALVING_DATE = datetime(2024, 4, 20, tzinfo=timezone.utc)  # reference epoch for the cycle signal
CYCLE_LENGTH_DAYS = 1460  # one halving cycle
CYCLE_PHASE_SHIFT_DAYS = 180
LIQUIDITY_WINDOW = 108  # days of price change fed into the logistic
LIQUIDITY_DIVISOR = 20
CYCLE_WEIGHT = 0.6
LIQUIDITY_WEIGHT = 0.4

# Risk labels (for the [0, 1] strategies)
BUY_LESS_THRESHOLD = 0.7
BUY_MORE_THRESHOLD = 0.3

DEFAULT_STRATEGY = os.getenv("BTC_DCA_STRATEGY", "deviation_ratio")

# Configuration for local storage
DB_PATH = os.getenv("BTC_DCA_DB_PATH", "data/btc_dca.db")
NEWSLETTER_KEY = "newsletterEmails"  # list key the subscriber emails are stored under
LOG_DB_PATH = os.getenv("LOG_DB_PATH")  # write log records to sqlite when set
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
