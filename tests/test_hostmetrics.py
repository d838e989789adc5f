from dogflush.aggregator import Aggregator
from dogflush.hostmetrics import HostMetricCollector, HostMetrics, HostMetricsFlusher

FIXED = HostMetrics(
    cpu_user=12.5, cpu_system=3.0, cpu_iowait=0.5, cpu_idle=84.0, cpu_stolen=0.0, cpu_guest=0.0,
    mem_total=2048.0, mem_free=512.0, mem_used=1536.0, mem_usable=1024.0, mem_pct_usable=0.5,
)


class FixedCollector:
    def run(self):
        return FIXED


def test_collector_reads_host():
    c = HostMetricCollector()
    hm = c.run()
    assert hm.mem_total > 0
    assert 0.0 <= hm.mem_pct_usable <= 1.0
    assert hm.cpu_idle >= 0.0


def test_flusher_records_gauges_and_flushes(uploader):
    agg = Aggregator(uploader, host="box")
    f = HostMetricsFlusher(agg, tags=["role:db"], collector=FixedCollector())
    f.flush()
    got = uploader.by_name()
    assert got["xsystem.cpu.user"].value == 12.5
    assert got["xsystem.cpu.stolen"].value == 0.0
    assert got["xsystem.mem.pct_usable"].value == 0.5
    assert got["xsystem.mem.total"].tags == ["role:db"]
    assert len(got) == len(HostMetrics._fields)

    f.close()
    assert agg.closed
