"""rdstry - run SQL against a throwaway clone of an RDS instance.

Restores a clone from the source instance's latest snapshot, waits for it to
become available, runs a batch of queries, exports the results as CSV and
deletes the clone again.
"""

__version__ = "0.4.0"
