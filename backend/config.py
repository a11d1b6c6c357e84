import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma-separated list of browser origins allowed to talk to the server
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000').split(',') if o.strip()]
    # Auto-advance timers (seconds)
    RESPONSE_DURATION_SEC = float(os.environ.get('RESPONSE_DURATION_SEC', '60'))
    VOTING_DURATION_SEC = float(os.environ.get('VOTING_DURATION_SEC', '45'))
    RESULTS_DURATION_SEC = float(os.environ.get('RESULTS_DURATION_SEC', '3'))
    MAX_ROUNDS = int(os.environ.get('MAX_ROUNDS', '3'))
    MAX_PLAYERS = int(os.environ.get('MAX_PLAYERS', '8'))
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
    # Session codes: length and how many random draws before giving up
    SESSION_CODE_LENGTH = int(os.environ.get('SESSION_CODE_LENGTH', '6'))
    SESSION_CODE_ATTEMPTS = int(os.environ.get('SESSION_CODE_ATTEMPTS', '20'))
    # Optional: heartbeat interval for timer worker logs (sec). 0 disables.
    TIMER_HEARTBEAT_SEC = float(os.environ.get('TIMER_HEARTBEAT_SEC', '0'))
