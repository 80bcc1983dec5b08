"""Prometheus metrics for the device monitor."""

from prometheus_client import Counter, Gauge, Histogram, Info

from devicewatch.version import __version__

# Application info
app_info = Info("devicewatch", "Application information")
app_info.info({
    "version": __version__,
    "service": "devicewatch",
})

# Probe metrics
probes_total = Counter(
    "devicewatch_probes_total",
    "Total number of device probes, by the method that succeeded",
    ["result"],  # icmp, tcp or offline
)

cycle_duration_seconds = Histogram(
    "devicewatch_cycle_duration_seconds",
    "Duration of a full monitoring cycle in seconds",
    buckets=[1, 5, 10, 15, 30, 60, 120],
)

# Device status
device_online_status = Gauge(
    "devicewatch_device_online",
    "Device online status (1=online, 0=offline)",
    ["device", "ip"],
)

status_changes_total = Counter(
    "devicewatch_status_changes_total",
    "Total number of device status changes detected",
    ["state"],
)

# Notification metrics
notifications_sent_total = Counter(
    "devicewatch_notifications_sent_total",
    "Total number of notifications sent",
    ["channel"],
)

notifications_failed_total = Counter(
    "devicewatch_notifications_failed_total",
    "Total number of failed notification attempts",
    ["channel"],
)
