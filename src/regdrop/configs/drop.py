# Defaults shared by the selector and the command line.
# Parameter ranges follow the DROP-for-regression filter options.

DEFAULT_VARIANT = "drop2-error"

# Number of nearest neighbours (k). Must be odd and >= 1.
DEFAULT_N_NEIGHBORS = 1

# Leniency of the error criterion and of the ENN-Reg pre-filter, in [0, 100].
DEFAULT_ALPHA = 1.0

# Weight of the enemy threshold used when ordering, in [0, 100].
DEFAULT_BETA = 5.0

# Min-max scale attributes before measuring Euclidean distances.
DEFAULT_NORMALIZE = True

PARAMETER_MIN = 0.0
PARAMETER_MAX = 100.0

DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

TARGET_COLUMN = "target"
