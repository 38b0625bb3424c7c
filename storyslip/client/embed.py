"""
Declarative embeds.

Elements carrying ``data-storyslip-widget`` are turned into widget
instances using their data-* attributes as configuration.
"""
import itertools
import logging
from typing import Dict, List, Optional

from .config import ClientConfig
from .host import HostPage
from .runtime import StorySlipWidget

logger = logging.getLogger(__name__)

MARKER_ATTRIBUTE = 'data-storyslip-widget'

_auto_ids = itertools.count(1)


class WidgetRegistry:
    """Instances created on a page, keyed by container id."""

    def __init__(self, client=None, executor=None):
        self.client = client
        self.executor = executor
        self.widgets: Dict[str, StorySlipWidget] = {}

    def __len__(self):
        return len(self.widgets)

    def auto_init(self, host: HostPage, **defaults) -> List[StorySlipWidget]:
        """Initialize every marked element not already managed; returns the new instances."""
        created = []
        for element in host.find_by_attribute(MARKER_ATTRIBUTE):
            if not element.id:
                element.id = f'storyslip-auto-{next(_auto_ids)}'
            if element.id in self.widgets:
                continue

            attributes = dict(element.attributes)
            # The marker may carry the widget id itself
            if attributes.get(MARKER_ATTRIBUTE) and 'data-widget-id' not in attributes:
                attributes['data-widget-id'] = attributes[MARKER_ATTRIBUTE]

            config = ClientConfig.from_attributes(attributes, **defaults)
            widget = StorySlipWidget(host, client=self.client, executor=self.executor)
            if widget.init(config, container_id=element.id):
                self.widgets[element.id] = widget
                created.append(widget)
            else:
                logger.warning('StorySlip: could not initialize embed %s', element.id)

        return created

    def get(self, container_id: str) -> Optional[StorySlipWidget]:
        return self.widgets.get(container_id)

    def destroy_all(self) -> None:
        for widget in self.widgets.values():
            widget.destroy()
        self.widgets.clear()


def auto_init(host: HostPage, registry: WidgetRegistry = None, **defaults) -> WidgetRegistry:
    if registry is None:
        registry = WidgetRegistry()
    registry.auto_init(host, **defaults)
    return registry
