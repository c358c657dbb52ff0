from datetime import datetime, timezone

import pytest

from atlas.builder import FormatOneBuilder, FormatTwoBuilder, create_builder
from atlas.errors import ParseError, RejectedMessage, UnknownEfoyAction, UnknownSkipReason
from atlas.heartbeat import EfoyAction, EfoyActionKind, SkipReason
from atlas.units import Celsius, Degree, Kilobyte, Meter, Millibar, OrionPercentage, Percentage, Volt

from conftest import (
    T0,
    V2_ROWS,
    make_message,
    make_messages,
    v1_fields,
    v1_payload,
    v2_body,
    v2_single_payload,
    v2_split_payloads,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_create_v1_builder():
    builder = create_builder(make_message(v1_payload()))
    assert isinstance(builder, FormatOneBuilder)
    assert builder.is_full()


def test_create_v2_single_message_builder_is_full():
    builder = create_builder(make_message(v2_single_payload()))
    assert isinstance(builder, FormatTwoBuilder)
    assert builder.header is None
    assert builder.is_full()


def test_create_v2_builder_reads_header():
    payloads = v2_split_payloads(v2_body(), [100], group_id=7)
    builder = create_builder(make_message(payloads[0]))
    assert isinstance(builder, FormatTwoBuilder)
    assert builder.header.id == 7
    assert builder.header.bytes == len(v2_body())
    assert not builder.is_full()


def test_create_rejects_continuation_and_returns_same_message():
    payloads = v2_split_payloads(v2_body(), [100])
    message = make_message(payloads[1])
    with pytest.raises(RejectedMessage) as exc:
        create_builder(message)
    assert exc.value.message is message


def test_create_rejects_non_utf8_payload():
    message = make_message(b"0,\xff\xfe")
    with pytest.raises(RejectedMessage) as exc:
        create_builder(message)
    assert exc.value.message is message


def test_v1_push_until_full():
    payload = v1_payload()
    first, second = make_messages([payload[:150], payload[150:]])
    builder = create_builder(first)
    assert not builder.is_full()
    builder.push(second)
    assert builder.is_full()
    assert builder.payload().count(",") + 1 == 49


def test_v1_push_past_capacity_is_rejected_and_undone():
    payload = v1_payload()
    first, second = make_messages([payload[:150], payload[150:]])
    builder = create_builder(first)
    builder.push(second)
    with pytest.raises(RejectedMessage) as exc:
        builder.push(second)
    assert exc.value.message is second
    assert builder.messages == [first, second]
    assert builder.is_full()


def test_v1_full_builder_still_takes_the_rest_of_a_cut_field():
    payload = v1_payload()
    first, second = make_messages([payload[:-3], payload[-3:]])
    builder = create_builder(first)
    assert builder.is_full()
    builder.push(second)
    assert builder.is_full()
    assert builder.payload() == payload


def test_v2_push_matching_id():
    first, second = make_messages(v2_split_payloads(v2_body(), [200]))
    builder = create_builder(first)
    builder.push(second)
    assert builder.is_full()


def test_v2_push_mismatched_id_leaves_builder_alone():
    first = make_message(v2_split_payloads(v2_body(), [200], group_id=1)[0])
    stranger = make_message(v2_split_payloads(v2_body(), [200], group_id=2)[1], offset_s=10)
    builder = create_builder(first)
    with pytest.raises(RejectedMessage) as exc:
        builder.push(stranger)
    assert exc.value.message is stranger
    assert builder.messages == [first]
    assert not builder.is_full()


def test_v2_push_without_secondary_header_is_rejected():
    first = make_message(v2_split_payloads(v2_body(), [200])[0])
    builder = create_builder(first)
    with pytest.raises(RejectedMessage):
        builder.push(make_message("garbage", offset_s=5))
    assert builder.messages == [first]


def test_v2_push_into_full_builder_is_rejected():
    first, second = make_messages(v2_split_payloads(v2_body(), [200]))
    builder = create_builder(first)
    builder.push(second)
    with pytest.raises(RejectedMessage) as exc:
        builder.push(second)
    assert exc.value.message is second
    assert builder.is_full()


def test_v1_heartbeat():
    heartbeat = create_builder(make_message(v1_payload())).finalize()
    assert heartbeat.start_time == T0
    assert heartbeat.external_temperature == Celsius(11.095)
    assert heartbeat.mount_temperature == Celsius(16.1175)
    assert heartbeat.pressure == Millibar(962.690)
    assert heartbeat.humidity == Percentage(36.487)
    assert heartbeat.soc1 == OrionPercentage(4.68509)
    assert heartbeat.soc2 == OrionPercentage(4.69742)
    assert heartbeat.last_scan.start == utc(2015, 7, 31, 18, 2, 18)
    assert heartbeat.last_scan.end is None
    assert heartbeat.last_scan.detail is None
    assert heartbeat.last_scan_on is None
    assert heartbeat.last_efoy1_action is None


def test_v1_heartbeat_month_offset_crosses_into_december():
    fields = v1_fields()
    fields[11] = "11/01/15 00:00:00"
    heartbeat = create_builder(make_message(v1_payload(fields))).finalize()
    assert heartbeat.last_scan.start == utc(2015, 12, 1)


def test_v1_bad_number_names_the_field():
    fields = v1_fields()
    fields[26] = "n/a"
    with pytest.raises(ParseError) as exc:
        create_builder(make_message(v1_payload(fields))).finalize()
    assert exc.value.location == "field 26"
    assert exc.value.value == "n/a"


@pytest.mark.parametrize("index,value", [(1, "1_1.0"), (2, " nan "), (3, "inf"), (37, "4e0"), (40, "")])
def test_v1_rejects_numbers_the_station_never_sends(index, value):
    fields = v1_fields()
    fields[index] = value
    with pytest.raises(ParseError) as exc:
        create_builder(make_message(v1_payload(fields))).finalize()
    assert exc.value.location == f"field {index}"


def test_v2_negative_point_count():
    rows = list(V2_ROWS)
    rows[4] = rows[4].replace(",20035104,", ",-20035104,")
    with pytest.raises(ParseError) as exc:
        create_builder(make_message(v2_single_payload(rows))).finalize()
    assert exc.value.location == "scan_detail[1]"


def test_v1_bad_datetime_names_the_field():
    fields = v1_fields()
    fields[11] = "yesterday"
    with pytest.raises(ParseError) as exc:
        create_builder(make_message(v1_payload(fields))).finalize()
    assert exc.value.location == "field 11"


def test_v1_short_builder_does_not_finalize():
    builder = create_builder(make_message(v1_payload()[:100]))
    with pytest.raises(ParseError) as exc:
        builder.finalize()
    assert exc.value.location == "fields"


def test_v2_heartbeat():
    heartbeat = create_builder(make_message(v2_single_payload())).finalize()
    assert heartbeat.start_time == T0
    assert heartbeat.external_temperature == Celsius(9.915)
    assert heartbeat.mount_temperature == Celsius(12.4)
    assert heartbeat.pressure == Millibar(942.240)
    assert heartbeat.humidity == Percentage(40.932)
    assert heartbeat.soc1 == OrionPercentage(4.097)
    assert heartbeat.soc2 == OrionPercentage(4.132)

    scan_on = heartbeat.last_scan_on
    assert scan_on.datetime == utc(2016, 8, 16, 12, 1, 47)
    assert scan_on.scanner_voltage == Volt(23.4)
    assert scan_on.scanner_temperature == Celsius(11.8)
    assert scan_on.memory_external == Kilobyte(740991025.152)
    assert scan_on.memory_internal == Kilobyte(995349954.56)

    scan = heartbeat.last_scan
    assert scan.start == utc(2016, 8, 16, 12, 1, 58)
    assert scan.end == utc(2016, 8, 16, 12, 40, 24)
    assert scan.detail.num_points == 20035104
    assert scan.detail.minimum_range == Meter(-40.277)
    assert scan.detail.maximum_range == Meter(5164.539)
    assert scan.detail.file_size == Kilobyte(282005.084)
    assert scan.detail.minimum_amplitude == 0
    assert scan.detail.maximum_amplitude == 42
    assert scan.detail.roll == Degree(-0.488)
    assert scan.detail.pitch == Degree(-0.108)
    assert scan.detail.latitude == Degree(66.329918)
    assert scan.detail.longitude == Degree(-38.174053)

    skip = heartbeat.last_scan_skip
    assert skip.datetime == utc(2016, 8, 11, 18, 25, 35)
    assert skip.reason is SkipReason.COULD_NOT_CONNECT_TO_HOUSING
    assert skip.description is None

    assert heartbeat.last_efoy1_action == EfoyAction(EfoyActionKind.START, utc(2016, 8, 11, 19))
    assert heartbeat.last_efoy2_action == EfoyAction(EfoyActionKind.START, utc(2016, 8, 12, 11))


def test_v2_scanner_error_keeps_description():
    rows = list(V2_ROWS)
    rows[5] = "08/11/16 18:25:35,3,laser did not spin up"
    heartbeat = create_builder(make_message(v2_single_payload(rows))).finalize()
    assert heartbeat.last_scan_skip.reason is SkipReason.SCANNER_ERROR
    assert heartbeat.last_scan_skip.description == "laser did not spin up"


@pytest.mark.parametrize("cuts", [[1], [57], [200, 201], [30, 90, 150, 300], [len(v2_body()) - 1]])
def test_v2_split_anywhere_gives_the_same_heartbeat(cuts):
    expected = create_builder(make_message(v2_single_payload())).finalize()
    messages = make_messages(v2_split_payloads(v2_body(), cuts))
    builder = create_builder(messages[0])
    for message in messages[1:]:
        assert not builder.is_full()
        builder.push(message)
    assert builder.is_full()
    assert builder.finalize() == expected


def test_v2_unknown_skip_reason():
    rows = list(V2_ROWS)
    rows[5] = "08/11/16 18:25:35,9,who knows"
    with pytest.raises(UnknownSkipReason) as exc:
        create_builder(make_message(v2_single_payload(rows))).finalize()
    assert exc.value.code == "9"
    assert exc.value.description == "who knows"


def test_v2_unknown_efoy_action():
    rows = list(V2_ROWS)
    rows[8] = "08/12/2016 11:00:00.000,explode"
    with pytest.raises(UnknownEfoyAction) as exc:
        create_builder(make_message(v2_single_payload(rows))).finalize()
    assert exc.value.location == "efoy2[1]"
    assert exc.value.word == "explode"


def test_v2_missing_rows():
    rows = V2_ROWS[:-1]
    payloads = v2_split_payloads(v2_body(rows), [100])
    builder = create_builder(make_message(payloads[0]))
    builder.push(make_message(payloads[1], offset_s=12))
    assert builder.is_full()
    with pytest.raises(ParseError) as exc:
        builder.finalize()
    assert exc.value.location == "power"


def test_v2_extra_rows():
    rows = V2_ROWS + ["garbage,row", "more"]
    with pytest.raises(ParseError) as exc:
        create_builder(make_message(v2_single_payload(rows))).finalize()
    assert exc.value.location == "power"
    assert exc.value.value == "garbage,row"


def test_v2_trailing_blank_line_is_fine():
    body = v2_body() + "\r\n"
    heartbeat = create_builder(make_message("0" + body)).finalize()
    assert heartbeat.soc2 == OrionPercentage(4.132)


def test_v2_short_row():
    rows = list(V2_ROWS)
    rows[4] = "08/16/16 12:40:24,20035104,-40.277"
    with pytest.raises(ParseError) as exc:
        create_builder(make_message(v2_single_payload(rows))).finalize()
    assert exc.value.location == "scan_detail"


def test_v2_bad_number_names_row_and_column():
    rows = list(V2_ROWS)
    rows[2] = "9.915,lots,40.932"
    with pytest.raises(ParseError) as exc:
        create_builder(make_message(v2_single_payload(rows))).finalize()
    assert exc.value.location == "weather[1]"
