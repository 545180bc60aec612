"""Interactive configuration as a finite-state machine.

The configurator walks through six stages in a fixed order (architecture,
distribution, profile, obs, root password, cleanup), then asks for
confirmation. Declining the confirmation starts a new pass over all six
stages with the values chosen so far as the current selection.

All input goes through a Prompter, so the machine can be driven by a
terminal or by a scripted list of answers.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from rich.markup import escape

from particlectl.core.errors import ConfigurationAborted
from particlectl.core.validator import (
    ValidationResult,
    Verdict,
    validate_architecture,
    validate_distribution,
    validate_profiles,
)
from particlectl.models.catalog import (
    COMMON_ARCHITECTURES,
    DEFAULT_DISTRIBUTION,
    DESKTOP_PROFILE,
    DISTRIBUTIONS,
    OBS_PROFILE,
    PROFILE_RECOMMENDATIONS,
    PROFILES,
    RECOMMENDED_COMBINATIONS,
    OptionEntry,
    addons_for,
)
from particlectl.models.config import (
    MIN_PASSWORD_LENGTH,
    BuildConfig,
    CleanMode,
    default_architecture,
)
from particlectl.models.profiles import ProfileSet
from particlectl.utils.formatting import (
    console,
    format_option_line,
    print_config_summary,
    print_error,
    print_header,
    print_info,
    print_options,
    print_section,
    print_success,
    print_warning,
)

logger = logging.getLogger(__name__)

# Menu number -> cleanup mode offered in the cleanup stage
CLEANUP_CHOICES: dict[str, CleanMode] = {
    "1": CleanMode.CACHE_ONLY,
    "2": CleanMode.CACHE_AND_PACKAGES,
    "3": CleanMode.FULL_CLEAN,
    "4": CleanMode.NONE,
}

NO_PROFILE = "none"


class Stage(Enum):
    """Configuration stages in the order they run."""

    ARCHITECTURE = "architecture"
    DISTRIBUTION = "distribution"
    PROFILE = "profile"
    OBS = "obs"
    ROOT_PASSWORD = "root_password"
    CLEANUP = "cleanup"


STAGE_ORDER: tuple[Stage, ...] = tuple(Stage)


class ConfiguratorStatus(Enum):
    """Lifecycle of a configurator run.

    Attributes:
        RUNNING: Stages are being prompted.
        CONFIRMING: All stages done, waiting for the final confirmation.
        DONE: Configuration accepted. Terminal.
        ABORTED: Cancelled by the user. Terminal.
    """

    RUNNING = "running"
    CONFIRMING = "confirming"
    DONE = "done"
    ABORTED = "aborted"


@dataclass(slots=True)
class ConfiguratorState:
    """Position of the machine.

    Attributes:
        status: Current lifecycle status.
        stage: Stage to run next while RUNNING, None otherwise.
        passes: Number of passes started over the stages.
    """

    status: ConfiguratorStatus = ConfiguratorStatus.RUNNING
    stage: Stage | None = Stage.ARCHITECTURE
    passes: int = 1


class Prompter(Protocol):
    """Source of user answers."""

    def ask(self, text: str, default: str = "") -> str:
        """Return a line of input; empty means "keep the current value"."""
        ...

    def ask_secret(self, text: str) -> str:
        """Return a line of input without echoing it."""
        ...

    def confirm(self, text: str, default: bool = False) -> bool:
        """Return a yes/no answer."""
        ...


def _notify(result: ValidationResult) -> None:
    if result.verdict == Verdict.NORMALIZED:
        print_info(result.message)
    elif result.verdict == Verdict.UNLISTED:
        print_warning(result.message)


def _print_rejection(result: ValidationResult) -> None:
    print_error(escape(result.message))
    console.print(f"Valid {result.axis.value} options:")
    print_options(result.options)


class InteractiveConfigurator:
    """Guided configuration of a BuildConfig.

    The configuration passed in is updated in place as each stage
    completes.

    Example:
        >>> configurator = InteractiveConfigurator(config, TyperPrompter())
        >>> configurator.run()
    """

    def __init__(self, config: BuildConfig, prompter: Prompter) -> None:
        self.config = config
        self.prompter = prompter
        self.state = ConfiguratorState()
        self._handlers = {
            Stage.ARCHITECTURE: self._architecture_stage,
            Stage.DISTRIBUTION: self._distribution_stage,
            Stage.PROFILE: self._profile_stage,
            Stage.OBS: self._obs_stage,
            Stage.ROOT_PASSWORD: self._root_password_stage,
            Stage.CLEANUP: self._cleanup_stage,
        }

    @property
    def status(self) -> ConfiguratorStatus:
        return self.state.status

    def step(self) -> ConfiguratorStatus:
        """Run one stage (or the confirmation) and advance the machine.

        Returns:
            Status after the step. Terminal statuses are returned unchanged.

        Raises:
            ConfigurationAborted: If the user interrupts a prompt.
        """
        if self.state.status in (ConfiguratorStatus.DONE, ConfiguratorStatus.ABORTED):
            return self.state.status

        try:
            stage = self.state.stage
            if self.state.status == ConfiguratorStatus.RUNNING and stage is not None:
                self._handlers[stage]()
                self._advance(stage)
            else:
                self._confirm()
        except (KeyboardInterrupt, EOFError) as e:
            self.state.status = ConfiguratorStatus.ABORTED
            self.state.stage = None
            logger.debug("Interactive configuration aborted: %r", e)
            msg = "Configuration cancelled by user"
            raise ConfigurationAborted(msg) from e

        return self.state.status

    def run(self) -> BuildConfig:
        """Step until the configuration is accepted.

        Returns:
            The configured BuildConfig (the same object passed in).

        Raises:
            ConfigurationAborted: If the user interrupts a prompt.
        """
        print_header("ParticleOS Interactive Configuration")
        while self.step() != ConfiguratorStatus.DONE:
            pass
        return self.config

    def _advance(self, stage: Stage) -> None:
        position = STAGE_ORDER.index(stage)
        if position + 1 < len(STAGE_ORDER):
            self.state.stage = STAGE_ORDER[position + 1]
        else:
            self.state.stage = None
            self.state.status = ConfiguratorStatus.CONFIRMING

    def _confirm(self) -> None:
        print_config_summary(self.config)
        if self.prompter.confirm("Proceed with this configuration?", default=True):
            self.state.status = ConfiguratorStatus.DONE
            return
        print_info("Restarting configuration...")
        self.state.status = ConfiguratorStatus.RUNNING
        self.state.stage = Stage.ARCHITECTURE
        self.state.passes += 1

    def _architecture_stage(self) -> None:
        print_section("Architecture Selection")
        print_options(
            COMMON_ARCHITECTURES,
            selected=[self.config.architecture],
            default=default_architecture(),
        )
        console.print(
            "\n[warning]Note: Additional architectures are supported. "
            "Type the exact name if not listed above.[/]"
        )
        while True:
            answer = self.prompter.ask("Enter architecture", self.config.architecture).strip()
            if not answer or answer == self.config.architecture:
                print_info(f"Using architecture: {escape(self.config.architecture)}")
                return
            result = validate_architecture(answer)
            if result.accepted:
                _notify(result)
                self.config.architecture = result.value
                print_info(f"Architecture set to: {escape(result.value)}")
                return
            _print_rejection(result)

    def _distribution_stage(self) -> None:
        print_section("Distribution Selection")
        print_options(
            DISTRIBUTIONS,
            selected=[self.config.distribution],
            default=DEFAULT_DISTRIBUTION,
        )
        while True:
            answer = self.prompter.ask("Enter distribution", self.config.distribution).strip()
            if not answer or answer == self.config.distribution:
                print_info(f"Using distribution: {escape(self.config.distribution)}")
                return
            result = validate_distribution(answer)
            if result.accepted:
                self.config.distribution = result.value
                print_info(f"{escape(result.value)} distribution set.")
                return
            _print_rejection(result)

    def _profile_stage(self) -> None:
        print_section(
            "Profile Selection (optional)",
            "You can select individual profiles or combinations separated by commas.",
        )
        had_obs = self.config.obs_enabled
        current = self.config.profiles.without(OBS_PROFILE)
        self._show_profiles(current)

        while True:
            answer = self.prompter.ask("Enter profile", current.joined()).strip()
            if not answer or answer == current.joined():
                if current:
                    print_info(f"Using existing profile: {escape(current.joined())}")
                else:
                    print_info("Building without a profile.")
                return
            if answer.lower() == NO_PROFILE:
                print_info("Building without a profile.")
                chosen = ProfileSet()
                break

            answer = self._apply_recommendations(answer)
            result = validate_profiles(answer)
            if result.accepted:
                _notify(result)
                chosen = ProfileSet.parse(result.value)
                break

            _print_rejection(result)
            if self.prompter.confirm("Continue with default profile (none)?", default=True):
                print_warning("Using default profile (none)")
                chosen = ProfileSet()
                break

        self.config.profiles = chosen
        self.config.toggle_obs(had_obs or OBS_PROFILE in chosen)

    def _show_profiles(self, current: ProfileSet) -> None:
        none_entry = OptionEntry("[None]", "No profile")
        console.print(format_option_line(none_entry, selected=not current))
        console.print("Available profiles:")
        print_options(
            [entry for entry in PROFILES if entry.key != OBS_PROFILE],
            selected=current,
        )
        console.print("\nRecommended combinations:")
        print_options(RECOMMENDED_COMBINATIONS, selected=[current.joined()])

    def _apply_recommendations(self, answer: str) -> str:
        """Offer recommended combinations for a single-profile answer."""
        recommendation = PROFILE_RECOMMENDATIONS.get(answer)
        if recommendation is not None:
            base = recommendation.recommended_base
            if self.prompter.confirm(
                f"You've selected just '{answer}' without '{base}'. Is this intentional?",
                default=True,
            ):
                print_info(f"Using '{escape(answer)}' profile without '{base}'")
                return answer
            combined = f"{base},{answer}"
            if self.prompter.confirm(f"Would you like to use '{combined}' instead?", default=True):
                print_info(f"Using '{combined}' combination")
                return combined
            return answer

        if answer == DESKTOP_PROFILE:
            addons = addons_for(answer)
            if not addons:
                return answer
            listing = ", ".join(addons)
            if not self.prompter.confirm(
                f"You've selected only the '{answer}' base profile. "
                f"Would you like to add a desktop environment ({listing})?",
                default=False,
            ):
                return answer
            choice = self.prompter.ask(f"Enter desktop environment ({listing})").strip()
            if choice in addons:
                combined = f"{answer},{choice}"
                print_info(f"Using '{combined}' combination")
                return combined
            print_warning(f"Invalid choice. Continuing with just the '{answer}' profile.")
        return answer

    def _obs_stage(self) -> None:
        print_section(
            "OBS-hosted packages for systemd",
            "ParticleOS sometimes adopts systemd features as soon as they are merged, "
            "without waiting for a release. Including the [option.key]obs[/] profile "
            "builds with packages hosted on OBS (openSUSE Build Service).",
        )
        if self.config.obs_enabled:
            console.print("The [option.key]obs[/] profile is currently [selected]selected[/].")
        else:
            console.print("The [option.key]obs[/] profile is currently [warning]not selected[/].")

        enabled = self.prompter.confirm("Include obs profile?", default=self.config.obs_enabled)
        self.config.toggle_obs(enabled)
        if enabled:
            print_info("Using OBS repositories for systemd.")
        else:
            print_info("Using local tooling or current packages for systemd.")

    def _root_password_stage(self) -> None:
        print_section(
            "Root Password Configuration (optional)",
            "A default root password can be configured for the resulting image.",
        )
        while True:
            first = self.prompter.ask_secret("Enter a root password (or press Enter to skip)")
            if not first:
                print_info("No root password set.")
                self.config.set_root_password(None)
                return

            second = self.prompter.ask_secret("Confirm root password")
            if first != second:
                print_error("Passwords do not match. Please try again, or press Enter to skip.")
                continue

            if len(first) < MIN_PASSWORD_LENGTH and not self.prompter.confirm(
                f"Password is shorter than {MIN_PASSWORD_LENGTH} characters. Use it anyway?",
                default=False,
            ):
                continue

            self.config.set_root_password(first)
            print_success("Root password confirmed.")
            return

    def _cleanup_stage(self) -> None:
        print_section(
            "Cleaning Option for mkosi Build",
            "Configure if mkosi will cleanup files from prior builds:",
        )
        current = self.config.clean_mode
        for number, mode in CLEANUP_CHOICES.items():
            entry = OptionEntry(number, mode.label)
            console.print(
                format_option_line(
                    entry,
                    selected=mode == current,
                    default=mode == CleanMode.CACHE_ONLY,
                )
            )

        answer = self.prompter.ask("Enter your choice [1-4]").strip()
        mode = CLEANUP_CHOICES.get(answer)
        if mode is None:
            if answer:
                print_warning(f"Invalid choice '{escape(answer)}'. Keeping current setting.")
            mode = current
        self.config.clean_mode = mode
        print_info(f"Cleanup: {escape(mode.label)}")
