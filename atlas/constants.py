from __future__ import annotations

VERSION = "0.4.0"

# Version 1 heartbeats have no real framing: a "0," prefix and a fixed number of
# comma separated fields is all we get.
V1_NUM_FIELDS = 49
V1_HEADER = "0,"
V1_SCAN_START_FIELD = 11

V2_HEADER = r"^(1,(?P<id>\d+),\d+,(?P<bytes>\d+):)|(0)ATHB02\d\d\d\r"
V2_SECONDARY_HEADER = r"^1,(?P<id>\d+),\d+:"

DATETIME_FORMAT = "%m/%d/%y %H:%M:%S"
EFOY_DATETIME_FORMAT = "%m/%d/%Y %H:%M:%S"
SUTRON_DATETIME_FORMAT = "%m/%d/%Y,%H:%M:%S"

SCAN_INTERVAL_HOURS = 6

SBD_EXTENSION = ".sbd"
SBD_PROTOCOL_REVISION = 1
SBD_HEADER_IEI = 0x01
SBD_PAYLOAD_IEI = 0x02
