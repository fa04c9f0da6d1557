import os

from dotenv import load_dotenv

load_dotenv()

# History persistence
CALC_HISTORY_PATH = os.getenv("CALC_HISTORY_PATH", "calc_history.json")
CALC_HISTORY_LIMIT = int(os.getenv("CALC_HISTORY_LIMIT", "50"))

# Decimal places kept after evaluation, enough to hide binary float noise.
CALC_RESULT_PRECISION = int(os.getenv("CALC_RESULT_PRECISION", "10"))

# Speech
SPEECH_RATE = float(os.getenv("SPEECH_RATE", "0.9"))
ELEVEN_API_KEY = os.getenv("ELEVEN_API_KEY", "")
ELEVEN_VOICE_ID = os.getenv("ELEVEN_VOICE_ID", "")
ELEVEN_MODEL_ID = os.getenv("ELEVEN_MODEL_ID", "eleven_multilingual_v2")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
