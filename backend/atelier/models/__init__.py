from .fulfillment import *  # noqa: F401,F403
