"""Network interface existence probe."""

from ..common.exceptions import CommandError, OperationTimeoutError
from ..common.logging import get_logger
from ..common.process import CommandRunner
from ..common.timeout import with_timeout

logger = get_logger(__name__)


class InterfaceProbe:
    """Answers whether a network interface currently exists."""

    def __init__(self, runner: CommandRunner, timeout: float = 5.0):
        self.runner = runner
        self.timeout = timeout

    async def exists(self, name: str) -> bool:
        """Check for interface ``name`` with ``ip link show``.

        Never raises; any failure to get an answer counts as absent.
        """
        try:
            result = await with_timeout(
                self.runner.run(["ip", "link", "show", name]),
                self.timeout,
                f"check interface {name}",
            )
        except (CommandError, OperationTimeoutError) as e:
            logger.warning("Failed to check interface existence", interface=name, error=str(e))
            return False

        exists = result.ok
        logger.debug("Interface probed", interface=name, exists=exists)
        return exists
