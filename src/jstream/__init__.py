"""
Streaming, memory-bounded JSON collection encoder.

Turns an arbitrarily large lazy sequence of records into a single JSON array
(or, when offsets are preserved, a JSON object keyed by record offset),
producing output one record at a time so memory use is bounded by the
largest record rather than by the collection.

Typical use::

    config = jstream.configure().including_offset()
    for chunk in jstream.encode(rows, config):
        response.write(chunk)

    jstream.encode_to_path(rows, config, "out.json")
"""

from jstream._config import EncodeFlag
from jstream._config import EncoderConfig
from jstream._config import configure
from jstream._encoder import ValueEncoder
from jstream._errors import ConfigurationError
from jstream._errors import DepthExceededError
from jstream._errors import JSONEncodeError
from jstream._errors import JSONStreamError
from jstream._errors import SinkError
from jstream._errors import SourceSequenceError
from jstream._errors import UnencodableValueError
from jstream._profile import HotPathStats
from jstream._profile import clear_hot_path_stats
from jstream._profile import get_hot_path_stats
from jstream._sinks import PathSink
from jstream._sinks import StreamSink
from jstream._sinks import encode_to_path
from jstream._sinks import encode_to_sink
from jstream._stream import KeyedRecords
from jstream._stream import StreamEncoder
from jstream._stream import StreamState
from jstream._stream import encode
from jstream._stream import keyed

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "DepthExceededError",
    "EncodeFlag",
    "EncoderConfig",
    "HotPathStats",
    "JSONEncodeError",
    "JSONStreamError",
    "KeyedRecords",
    "PathSink",
    "SinkError",
    "SourceSequenceError",
    "StreamEncoder",
    "StreamSink",
    "StreamState",
    "UnencodableValueError",
    "ValueEncoder",
    "clear_hot_path_stats",
    "configure",
    "encode",
    "encode_to_path",
    "encode_to_sink",
    "get_hot_path_stats",
    "keyed",
]
