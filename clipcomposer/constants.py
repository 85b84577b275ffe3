from __future__ import annotations

APP_NAME = "Clip Composer"
BRIDGE_HOST = "127.0.0.1"
BRIDGE_PORT = 3000

LOG_PREVIEW_CHARS = 400

PROVIDER_ANTHROPIC = "anthropic"
PROVIDER_OPENROUTER = "openrouter"
PROVIDER_OLLAMA = "ollama"
PROVIDER_LMSTUDIO = "lmstudio"
DEFAULT_PROVIDER = PROVIDER_ANTHROPIC

DEFAULT_ANTHROPIC_BASE_URL = "https://api.anthropic.com/v1"
DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_OLLAMA_BASE_URL = "http://127.0.0.1:11434"
DEFAULT_LMSTUDIO_BASE_URL = "http://127.0.0.1:1234/v1"

DEFAULT_ANTHROPIC_MODEL = "claude-opus-4-1-20250805"
DEFAULT_OPENROUTER_MODEL = "anthropic/claude-opus-4.1"
DEFAULT_MODEL_NAME = "local-model"
ANTHROPIC_API_VERSION = "2023-06-01"

HTTP_TIMEOUT_SEC = 120.0
LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")

COMPOSE_TEMPERATURE = 0.2
COMPOSE_MAX_TOKENS = 3000
REPAIR_TEMPERATURE = 0.0
REPAIR_MAX_TOKENS = 1200

DEFAULT_CLIP_TYPE = "chords"
DEFAULT_BARS = 8
MIN_BARS = 1
MAX_BARS = 64
DEFAULT_TIME_SIGNATURE = "4/4"
TRIPLE_METER_PREFIX = "3/"
BEATS_PER_BAR_TRIPLE = 3
BEATS_PER_BAR_QUADRUPLE = 4
BEAT_UNIT = 4

MIDI_MIN = 0
MIDI_MAX = 127
MIDI_VEL_MIN = 1
SEMITONES_PER_OCTAVE = 12
MAX_SCALE_SEARCH = 6

TICKS_PER_BEAT = 480
MIDI_CLOCKS_PER_CLICK = 24
NOTATED_32ND_PER_BEAT = 8
MIDI_CHANNEL = 0
EXPORT_FILENAME = "clip.mid"
