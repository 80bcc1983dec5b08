"""Device reachability checks."""

import asyncio
import logging
import platform
import shutil
import socket
from typing import Optional, Sequence

from devicewatch.metrics import probes_total
from devicewatch.monitor.models import HealthState

logger = logging.getLogger(__name__)

# Probe policy
PING_COUNT = 3
PING_TIMEOUT_SECONDS = 5.0
TCP_CONNECT_TIMEOUT_SECONDS = 5.0

# Extra time allowed on top of count * timeout before the ping process is killed
PING_GRACE_SECONDS = 5.0


def _is_probeable(address: str) -> bool:
    """Reject addresses that would be parsed as ping options."""
    return bool(address) and not address.startswith("-") and not any(c.isspace() for c in address)


async def check_host_dns(target: str) -> Optional[str]:
    """Resolve hostname to IP address.

    Args:
        target: Hostname or IP literal to resolve.

    Returns:
        IP address if resolved, None otherwise.
    """
    try:
        loop = asyncio.get_running_loop()
        result = await loop.getaddrinfo(
            target,
            None,
            family=socket.AF_UNSPEC,
            type=socket.SOCK_STREAM,
        )
        if result:
            ip = result[0][4][0]
            logger.debug("Resolved %s to %s", target, ip)
            return ip
    except (socket.gaierror, UnicodeError) as e:
        logger.warning("DNS resolution failed for %s: %s", target, e)
    except Exception as e:
        logger.error("Unexpected error resolving %s: %s", target, e)
    return None


async def check_host_tcp_connect(
    target: str,
    port: int,
    timeout: float = TCP_CONNECT_TIMEOUT_SECONDS,
) -> bool:
    """Check if host is reachable via TCP connect.

    Used as a fallback for devices that drop ICMP.

    Args:
        target: Hostname or IP address.
        port: Port to try connecting to.
        timeout: Connection timeout in seconds.

    Returns:
        True if the handshake completed or was actively refused, False otherwise.
    """
    writer = None
    try:
        future = asyncio.open_connection(target, port)
        reader, writer = await asyncio.wait_for(future, timeout=timeout)
        logger.debug("TCP connect to %s:%d successful", target, port)
        return True
    except asyncio.TimeoutError:
        logger.debug("TCP connect to %s:%d timed out", target, port)
        return False
    except ConnectionRefusedError:
        # A refusal comes from the host itself
        logger.debug("TCP connect to %s:%d refused (host is up)", target, port)
        return True
    except Exception as e:
        logger.debug("TCP connect to %s:%d failed: %s", target, port, e)
        return False
    finally:
        if writer is not None:
            writer.close()
            try:
                await writer.wait_closed()
            except Exception:
                pass  # Ignore cleanup errors


def _build_ping_command(ping_cmd: str, target: str, count: int, timeout: float) -> list:
    """Build platform-specific ping arguments.

    Linux takes -W in seconds, macOS takes -W in milliseconds and Windows
    uses -n/-w with milliseconds.
    """
    system = platform.system()
    if system == "Windows":
        return [ping_cmd, "-n", str(count), "-w", str(int(timeout * 1000)), target]
    if system == "Darwin":
        return [ping_cmd, "-c", str(count), "-W", str(int(timeout * 1000)), target]
    return [ping_cmd, "-c", str(count), "-W", str(max(1, int(timeout))), target]


async def _wait_for_ping(proc, capture_output: bool) -> bytes:
    """Wait for the ping process, returning stdout when it is captured."""
    if capture_output:
        stdout, _ = await proc.communicate()
        return stdout or b""
    await proc.wait()
    return b""


async def check_host_ping(
    target: str,
    timeout: float = PING_TIMEOUT_SECONDS,
    count: int = PING_COUNT,
) -> bool:
    """Check if host answers ICMP echo using the system ping command.

    The system ping binary carries the raw socket privilege, so no elevated
    rights are needed by this process. On Linux and macOS exit status 0
    means at least one echo reply was received. Windows ping also exits 0
    when a gateway answers "Destination host unreachable", so there the
    output must contain an echo reply line (one carrying ``TTL=``).

    The ping process is killed if the check times out or is cancelled.

    Args:
        target: Hostname or IP address.
        timeout: Per-attempt timeout in seconds.
        count: Number of echo requests to send.

    Returns:
        True if at least one reply was received, False otherwise.
    """
    ping_cmd = shutil.which("ping")
    if not ping_cmd:
        logger.warning("ping command not found in PATH")
        return False

    cmd = _build_ping_command(ping_cmd, target, count, timeout)
    deadline = count * timeout + PING_GRACE_SECONDS
    capture_output = platform.system() == "Windows"

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE if capture_output else asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as e:
        logger.warning("Could not run ping for %s: %s", target, e)
        return False

    try:
        stdout = await asyncio.wait_for(_wait_for_ping(proc, capture_output), timeout=deadline)
    except asyncio.TimeoutError:
        logger.warning("Ping to %s did not finish within %.0fs, killing it", target, deadline)
        return False
    finally:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass

    returncode = proc.returncode
    if returncode != 0:
        logger.debug("Ping to %s failed (exit code %d)", target, returncode)
        return False
    if capture_output and b"TTL=" not in stdout.upper():
        logger.debug("Ping to %s got no echo reply", target)
        return False
    logger.debug("Ping to %s successful", target)
    return True


async def probe(
    address: str,
    tcp_fallback_ports: Optional[Sequence[int]] = None,
) -> HealthState:
    """Determine whether a device is currently reachable.

    Tries, in order:
    1. Name resolution (unresolvable addresses are offline)
    2. ICMP ping, PING_COUNT attempts of PING_TIMEOUT_SECONDS each
    3. TCP connect to each fallback port, if any are configured

    Any failure to probe is reported as offline rather than raised.

    Args:
        address: IP literal or hostname.
        tcp_fallback_ports: Ports to try when ICMP gets no reply.

    Returns:
        HealthState.ONLINE if any method succeeded, HealthState.OFFLINE otherwise.
    """
    method = None
    try:
        if not _is_probeable(address):
            logger.warning("Refusing to probe malformed address %r", address)
        elif await check_host_dns(address) is None:
            pass
        elif await check_host_ping(address):
            method = "icmp"
        else:
            for port in tcp_fallback_ports or ():
                if await check_host_tcp_connect(address, port):
                    method = "tcp"
                    break
    except Exception as e:
        logger.error("Unexpected error probing %s: %s", address, e)
        method = None

    state = HealthState.from_reachable(method is not None)
    probes_total.labels(result=method or "offline").inc()
    logger.debug("Probe of %s: %s (method: %s)", address, state.value, method)
    return state
