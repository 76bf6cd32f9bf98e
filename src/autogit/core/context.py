"""Application context with dependency injection."""

import random
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from autogit.cli.config import LoadedConfig, default_config_dir, load_config
from autogit.core.calendar import HolidayCalendar, load_default_calendar
from autogit.core.credentials import Credential
from autogit.gateway.git.abc import Git
from autogit.gateway.git.fake import FakeGit
from autogit.gateway.git.real import RealGit
from autogit.gateway.github.abc import ReviewGateway
from autogit.gateway.github.fake import FakeReviewGateway
from autogit.gateway.github.real import RealGitHubReviews
from autogit.gateway.time.abc import Time
from autogit.gateway.time.fake import FakeTime
from autogit.gateway.time.real import RealTime

ReviewGatewayFactory = Callable[[Credential], ReviewGateway]


@dataclass(frozen=True)
class AutogitContext:
    """Immutable context holding all dependencies for autogit operations.

    Created at CLI entry point and threaded through the application.
    The review gateway is built per run because it needs the credential
    accepted for that run.
    """

    git: Git
    review_gateway_factory: ReviewGatewayFactory
    time: Time
    calendar: HolidayCalendar
    config: LoadedConfig
    cwd: Path
    rng: random.Random = field(compare=False)

    @staticmethod
    def for_test(
        git: Git | None = None,
        reviews: ReviewGateway | None = None,
        time: Time | None = None,
        calendar: HolidayCalendar | None = None,
        config: LoadedConfig | None = None,
        cwd: Path | None = None,
        seed: int = 0,
    ) -> "AutogitContext":
        """Create a context from fakes, with any dependency overridable.

        Args:
            git: Defaults to an empty FakeGit
            reviews: Review gateway returned for every credential;
                defaults to an empty FakeReviewGateway
            time: Defaults to FakeTime so waits never block
            calendar: Defaults to the bundled holiday table
            config: Defaults to LoadedConfig()
            cwd: Defaults to /test/default/cwd so tests never touch the real cwd
            seed: Seed for the context's random generator
        """
        review_gateway = reviews if reviews is not None else FakeReviewGateway()
        return AutogitContext(
            git=git if git is not None else FakeGit(),
            review_gateway_factory=lambda _credential: review_gateway,
            time=time if time is not None else FakeTime(),
            calendar=calendar if calendar is not None else load_default_calendar(),
            config=config if config is not None else LoadedConfig(),
            cwd=cwd if cwd is not None else Path("/test/default/cwd"),
            rng=random.Random(seed),
        )


def create_context(*, seed: int | None = None) -> AutogitContext:
    """Create the production context.

    Raises:
        ValidationError: If the global config file is malformed
    """
    time = RealTime()
    config = load_config(default_config_dir())

    def review_gateway_factory(credential: Credential) -> ReviewGateway:
        return RealGitHubReviews(credential=credential, timeout=config.request_timeout)

    return AutogitContext(
        git=RealGit(time),
        review_gateway_factory=review_gateway_factory,
        time=time,
        calendar=load_default_calendar(),
        config=config,
        cwd=Path.cwd(),
        rng=random.Random(seed),
    )
