from .settings import Settings, settings, get_bool_env, get_int_env
from .feature_flags import FeatureFlags, feature_flags
