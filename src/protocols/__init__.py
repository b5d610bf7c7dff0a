"""Protocol-specific parameters and interest rate models.

Currently supported:
- Jump-rate lending markets (src.protocols.lending)
"""

# Import specific modules as needed:
#   from src.protocols.lending.config import IRM_PARAMS
#   from src.protocols.lending.irm import JumpRateModel
