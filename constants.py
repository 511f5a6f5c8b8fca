# constants.py

DEFAULT_TAX_RATE: float = 0.2
DEFAULT_SCENARIO_NAME: str = "DefaultScenario"
DEFAULT_CONFIG_FILENAME: str = "config.json"
DEFAULT_DISTRIBUTIONS_DIR: str = "real_distributions"
DISTRIBUTION_FILE_SUFFIX: str = "_dist.csv"
PERCENT: float = 100.0

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 3000

# Plotting constants
TEXT_INPUT_COLOR = '#1f77b4'
TEXT_OUTPUT_COLOR = '#ff7f0e'
