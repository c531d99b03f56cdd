"""
UWB field tracker configuration.
"""

# Field configuration
FIELD_CONFIG = {
    "width_cm": 40.0,         # Field width (anchor 1 -> anchor 2)
    "height_cm": 40.0,        # Field height (anchor 1 -> anchor 4)
}

# Live feed receiver configuration
FEED_CONFIG = {
    "host": "0.0.0.0",        # Listen on all interfaces
    "port": 8765,             # Listen port
    "max_queue_size": 1000,   # Bounded queue of undrained messages
}

# Demo (simulation) configuration
DEMO_CONFIG = {
    "interval_s": 0.2,        # One batch of 4 readings every 200 ms
    "radius_fraction": 0.4,   # Figure-8 radius as a fraction of field width
    "step_rad": 0.05,         # Path phase advance per batch
    "noise_cm": 10.0,         # Peak-to-peak uniform range noise
    "seed": None,             # RNG seed (None = random)
}

# Session configuration
SESSION_CONFIG = {
    "start_mode": "live",     # "live" or "demo"
    "online_window_ms": 30000,  # Anchor counts as online if heard within this window
    "loop_sleep_s": 0.01,     # Main loop idle sleep
}

# Output configuration
OUTPUT_CONFIG = {
    "enable_console_print": True,   # Print status to the console
    "status_interval_s": 1.0,       # Status print interval
    "export_path": None,            # Write position history CSV here on exit
}

# Logging configuration
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}
