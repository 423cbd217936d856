from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional

from .config import coerce_ignore_rule
from .delivery import deliver_exception_payload
from .helpers import cleanup_obj, error_class, flatten_meta_data
from .meta_data import MetaData
from .stacktrace import stacktrace
from .version import __version__

if TYPE_CHECKING:
    from .config import Configuration

LOGGER = logging.getLogger(__name__)

NOTIFIER_NAME = "Faultline Python Notifier"
NOTIFIER_VERSION = __version__
NOTIFIER_URL = "https://faultline.io"

API_KEY_REGEX = re.compile(r"[0-9a-f]{32}", re.IGNORECASE)

MAX_EXCEPTIONS_TO_UNWRAP = 5


def _convert(value: Any) -> Any:
    if isinstance(value, type) and issubclass(value, BaseException):
        return value()
    to_exception = getattr(value, "to_exception", None)
    if callable(to_exception):
        return to_exception()
    if hasattr(value, "exception"):
        exception = value.exception
        if not callable(exception):
            return exception
        done = getattr(value, "done", None)
        if callable(done) and not done():
            # Pending futures would block in exception().
            return value
        return exception()
    return value


def coerce_exception(value: Any) -> BaseException:
    """Return ``value`` as an exception instance, wrapping it in ``RuntimeError`` if needed."""
    if isinstance(value, BaseException):
        return value
    try:
        converted = _convert(value)
    except Exception as exc:  # noqa: BLE001
        LOGGER.warning("Could not convert %r to an exception: %s", value, exc)
        converted = None
    if isinstance(converted, BaseException):
        return converted
    LOGGER.warning("Converting non-exception to RuntimeError: %r", value)
    return RuntimeError(str(value))


def linked_exception(exception: BaseException) -> Optional[Any]:
    """Return the exception that ``exception`` continued from or was caused by."""
    for attribute in ("continued_exception", "original_exception"):
        linked = getattr(exception, attribute, None)
        if linked is not None:
            return linked
    if exception.__cause__ is not None:
        return exception.__cause__
    if exception.__context__ is not None and not exception.__suppress_context__:
        return exception.__context__
    return None


def unwrap_exceptions(exception: Any) -> list[BaseException]:
    exceptions: list[BaseException] = []
    current = exception
    while current is not None and len(exceptions) < MAX_EXCEPTIONS_TO_UNWRAP:
        resolved = coerce_exception(current)
        if any(resolved is seen for seen in exceptions):
            break
        exceptions.append(resolved)
        current = linked_exception(resolved)
    return exceptions


class Notification:
    """A single error report, from the raised exception to the delivered payload.

    Metadata precedence when the payload is built, lowest first: tabs added
    during the middleware run, metadata carried by the exceptions, overrides.
    """

    def __init__(
        self,
        exception: Any,
        configuration: "Configuration",
        overrides: Optional[Mapping[str, Any]] = None,
        request_data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.configuration = configuration
        self.overrides: dict[str, Any] = flatten_meta_data(overrides) or {}
        self._request_data = request_data
        self.meta_data: dict[str, Any] = {}
        self.context: Optional[str] = None
        self.user_id: Optional[str] = None
        self.exceptions = unwrap_exceptions(exception)

    @property
    def request_data(self) -> Mapping[str, Any]:
        if self._request_data is not None:
            return self._request_data
        return self.configuration.request_data

    def add_custom_data(self, name: Any, value: Any) -> None:
        self.meta_data.setdefault("custom", {})[str(name)] = value

    def add_tab(self, name: Any, value: Any) -> None:
        if name is None:
            return

        if isinstance(value, Mapping):
            self.meta_data.setdefault(str(name), {}).update(value)
        else:
            self.add_custom_data(name, value)
            LOGGER.warning("Adding a tab requires a mapping, adding to custom tab instead (name=%s)", name)

    def remove_tab(self, name: Any) -> None:
        if name is None:
            return
        self.meta_data.pop(str(name), None)

    def ignore(self) -> bool:
        if not self.exceptions:
            return False
        exception = self.exceptions[-1]
        return any(coerce_ignore_rule(rule).matches(exception) for rule in self.configuration.ignore_classes)

    def deliver(self) -> None:
        """Run the middleware and send this notification, if the configuration allows it."""
        configuration = self.configuration
        if not configuration.should_notify():
            LOGGER.warning(
                "Notifications are disabled for release stage %s, not notifying",
                configuration.release_stage,
            )
            return

        api_key = configuration.api_key
        if not api_key:
            LOGGER.warning("No API key configured, couldn't notify")
            return
        if not isinstance(api_key, str) or API_KEY_REGEX.search(api_key) is None:
            LOGGER.warning("Your API key (%s) is not valid, couldn't notify", api_key)
            return

        if not configuration.release_stage:
            LOGGER.warning("You should set your app's release_stage")

        self.meta_data = {}
        configuration.middleware.run(self, self._deliver_payload)

    def _deliver_payload(self) -> None:
        configuration = self.configuration

        for exception in self.exceptions:
            if isinstance(exception, MetaData):
                if isinstance(exception.faultline_user_id, str):
                    self.user_id = exception.faultline_user_id
                if isinstance(exception.faultline_context, str):
                    self.context = exception.faultline_context

        for name in ("user_id", "context"):
            if self.overrides.get(name):
                setattr(self, name, self.overrides.pop(name))

        endpoint = ("https://" if configuration.use_ssl else "http://") + configuration.endpoint
        reported = error_class(self.exceptions[-1]) if self.exceptions else "<none>"
        LOGGER.info("Notifying %s of %s", endpoint, reported)

        event = {
            "releaseStage": configuration.release_stage,
            "appVersion": configuration.app_version,
            "context": self.context,
            "userId": self.user_id,
            "exceptions": self._exception_list(),
            "metaData": cleanup_obj(self._generate_meta_data(), configuration.params_filters),
        }
        payload_event = {key: value for key, value in event.items() if value is not None}

        payload = {
            "apiKey": configuration.api_key,
            "notifier": {
                "name": NOTIFIER_NAME,
                "version": NOTIFIER_VERSION,
                "url": NOTIFIER_URL,
            },
            "events": [payload_event],
        }

        deliver_exception_payload(endpoint, payload)

    def _generate_meta_data(self) -> dict[str, Any]:
        meta_data = {name: dict(tab) if isinstance(tab, Mapping) else tab for name, tab in self.meta_data.items()}

        for exception in self.exceptions:
            if isinstance(exception, MetaData) and exception.faultline_meta_data:
                for key, value in exception.faultline_meta_data.items():
                    self._add_to_meta_data(str(key), value, meta_data)

        for key, value in self.overrides.items():
            self._add_to_meta_data(key, value, meta_data)

        return meta_data

    @staticmethod
    def _add_to_meta_data(key: str, value: Any, meta_data: dict[str, Any]) -> None:
        if isinstance(value, Mapping):
            existing = meta_data.get(key)
            if isinstance(existing, dict):
                existing.update(value)
            else:
                meta_data[key] = dict(value)
        else:
            meta_data.setdefault("custom", {})[key] = value

    def _exception_list(self) -> list[dict[str, Any]]:
        project_root = self.configuration.project_root
        return [
            {
                "errorClass": error_class(exception),
                "message": str(exception),
                "stacktrace": stacktrace(exception, project_root),
            }
            for exception in self.exceptions
        ]
