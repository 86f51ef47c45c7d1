"""
Persistence of pipeline output.

Modules:
    partitioner - Quarter partitions, recent window, partition index
    loader - Reading partitions back
    writer - all-data.json and metadata.json
"""

from . import partitioner
from . import loader
from . import writer
