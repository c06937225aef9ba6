from datetime import datetime

from starlette.requests import Request

from babyname.utils.mask import mask_code, mask_device_id, mask_ip
from babyname.utils.rate_limiter import MemoryWindowCounter
from babyname.utils.request_context import get_client_ip
from babyname.utils.timezone import to_china_time, to_iso_utc


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def build_request(headers: dict, client=("127.0.0.1", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(key.lower().encode(), value.encode()) for key, value in headers.items()],
        "query_string": b"",
        "client": client,
    }
    return Request(scope)


def test_mask_helpers():
    assert mask_code("BABY-A3F7-92D1-4E8C") == "BABY-A3F7-****"
    assert mask_code("BABY-1") == "****"
    assert mask_ip("192.168.1.20") == "192.168.xxx.xxx"
    assert mask_ip("::1") == "xxx.xxx.xxx.xxx"
    assert mask_device_id("short") == "****"
    assert mask_device_id("0123456789abcdef0123") == "01234567****cdef0123"


def test_memory_window_counter_blocks_after_limit_and_resets():
    clock = FakeClock()
    counter = MemoryWindowCounter(clock=clock)

    assert [counter.hit("ip", times=2, seconds=60) for _ in range(2)] == [0, 0]
    clock.now += 15
    assert counter.hit("ip", times=2, seconds=60) == 45
    assert counter.hit("other", times=2, seconds=60) == 0

    clock.now += 45
    assert counter.hit("ip", times=2, seconds=60) == 0


def test_client_ip_prefers_forwarded_headers():
    assert get_client_ip(build_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})) == "203.0.113.7"
    assert get_client_ip(build_request({"X-Real-IP": "198.51.100.2"})) == "198.51.100.2"
    assert get_client_ip(build_request({})) == "127.0.0.1"
    assert get_client_ip(build_request({}, client=None)) == "unknown"


def test_history_dates_use_beijing_time():
    created = datetime(2024, 5, 1, 18, 30)
    assert to_china_time(created).date().isoformat() == "2024-05-02"
    assert to_iso_utc(created) == "2024-05-01T18:30:00.000Z"
