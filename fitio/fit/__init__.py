"""
Decode the Flexible and Interoperable data Transfer (FIT) protocol [1]_.

The reading internals are split by layer: byte handling (`_binary`), the
record level protocol (`_protocol`) and the file level (`_reading`), which
validates the header and folds decoded messages into a `FitActivity`.

The message/field/type dictionary (`_profile.json`) is data, not code. It is
loaded once by `_profile`, which is the only thing that should touch it.


.. [1] https://www.thisisant.com/resources/fit

"""
from fitio.fit._options import FitOptions
from fitio.fit._reading import FitActivity, gen_messages, gen_records, parse
from fitio.fit._reading import read_and_format as read
