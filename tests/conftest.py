from datetime import datetime, timedelta, timezone

import pytest

from atlas.message import RawMessage

IMEI = "300234063909200"
OTHER_IMEI = "300234063909201"

T0 = datetime(2015, 7, 31, 23, 1, 59, tzinfo=timezone.utc)


def v1_fields():
    """A version 1 heartbeat as its 49 fields."""
    fields = ["0.0"] * 49
    fields[0] = "0"
    fields[1] = "11.095"      # external temperature
    fields[2] = "962.690"     # pressure
    fields[3] = "36.487"      # humidity
    fields[4] = "1"           # measurement program
    fields[5:11] = ["0", "360", "0.04", "30", "130", "0.04"]
    # Zero-based month: this is July 31st.
    fields[11] = "06/31/15 18:02:18"
    fields[26] = "16.1175"    # mount temperature
    fields[37] = "4.68509"    # soc1
    fields[40] = "4.69742"    # soc2
    fields[48] = "-0.344048"
    return fields


def v1_payload(fields=None):
    return ",".join(fields if fields is not None else v1_fields())


V2_ROWS = [
    "ATHB02123",
    "08/16/16 12:01:47,23.4,11.8,740991025.152,995349954.56",
    "9.915,942.240,40.932",
    "08/16/16 12:01:58",
    "08/16/16 12:40:24,20035104,-40.277,5164.539,282005.084,0,42,-0.488,-0.108,66.329918,-38.174053",
    "08/11/16 18:25:35,1,Could not connect to housing",
    "08/11/2016 19:00:00.000,start",
    "08/11/2016 15:00:00.000,success",
    "08/12/2016 11:00:00.000,start",
    "08/12/2016 07:00:00.000,success",
    "12.4,4.097,4.132",
]


def v2_body(rows=None):
    return "".join(row + "\r\n" for row in (rows if rows is not None else V2_ROWS))


def v2_single_payload(rows=None):
    return "0" + v2_body(rows)


def v2_split_payloads(body, cuts, group_id=42):
    """Frame ``body`` as a multi-message version 2 heartbeat, split at ``cuts``."""
    bounds = [0] + list(cuts) + [len(body)]
    chunks = [body[a:b] for a, b in zip(bounds, bounds[1:])]
    payloads = [f"1,{group_id},1,{len(body.encode())}:{chunks[0]}"]
    for seq, chunk in enumerate(chunks[1:], start=2):
        payloads.append(f"1,{group_id},{seq}:{chunk}")
    return payloads


def make_message(payload, offset_s=0, imei=IMEI, momsn=None, start=T0):
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    return RawMessage(
        time_of_session=start + timedelta(seconds=offset_s),
        imei=imei,
        payload=payload,
        momsn=momsn if momsn is not None else offset_s,
    )


def make_messages(payloads, imei=IMEI, start=T0, spacing_s=12):
    return [make_message(p, offset_s=i * spacing_s, imei=imei, start=start) for i, p in enumerate(payloads)]


class CapturingLogger:
    """Matches JsonLogger's .emit(event, **fields) contract."""
    def __init__(self):
        self.events = []

    def emit(self, event: str, **fields):
        self.events.append((event, fields))

    def names(self):
        return [e for e, _ in self.events]


class DummyNotifier:
    def __init__(self):
        self.calls = []

    def refresh_failing(self, directory, err):
        self.calls.append((directory, err))


@pytest.fixture
def logger():
    return CapturingLogger()


@pytest.fixture
def notifier():
    return DummyNotifier()
