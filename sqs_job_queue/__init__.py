"""
SQS Job Queue

A job queue adapter mapping a uniform submit/reserve/finish/release contract
onto a visibility-timeout message service such as Amazon SQS.
"""

__version__ = "1.0.0"
