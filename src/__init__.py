"""
Intervention Dispatch Service.

Offers field interventions to the best nearby technicians and arbitrates
who gets them.
"""

__version__ = "0.1.0"
__description__ = "Intervention Dispatch Service"
