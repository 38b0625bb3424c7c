"""
Host page model.

A minimal document the client runtime mounts into: elements addressable
by id, head style elements, event listeners with removable handles and
capability probes for visibility and size observation. When a capability
is absent the probe hands back a NullObserver so callers never branch on
support.
"""
import itertools
from typing import Callable, Dict, List, Optional


class Element:
    """A node in the host page."""

    def __init__(self, tag: str = 'div', id: str = None, attributes: dict = None,
                 classes=None, text: str = ''):
        self.tag = tag
        self.id = id
        self.attributes = dict(attributes or {})
        self.classes = set(classes or ())
        self.style: Dict[str, str] = {}
        self.inner_html = ''
        self.text = text
        self.parent: Optional['Element'] = None
        self.children: List['Element'] = []

    def __repr__(self):
        return f'<Element {self.tag}#{self.id}>' if self.id else f'<Element {self.tag}>'

    def append(self, child: 'Element') -> 'Element':
        if child.parent is not None:
            child.parent.children.remove(child)
        child.parent = self
        self.children.append(child)
        return child

    def remove(self) -> None:
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None

    @property
    def attached(self) -> bool:
        return self.parent is not None

    def set_html(self, html: str) -> None:
        self.inner_html = html

    def has_class(self, name: str) -> bool:
        return name in self.classes

    def get(self, attribute: str, default=None):
        return self.attributes.get(attribute, default)


class Event:
    """
    A dispatched event.

    ``target`` describes the node the event originated from; delegated
    handlers inspect its classes and attributes.
    """

    def __init__(self, type: str, target: Element = None, key: str = None, value: str = None):
        self.type = type
        self.target = target
        self.key = key
        self.value = value
        self.default_prevented = False

    def prevent_default(self) -> None:
        self.default_prevented = True


class NullObserver:
    """Stand-in when the host cannot observe; every call is a no-op."""
    supported = False

    def observe(self, element: Element) -> None:
        pass

    def unobserve(self, element: Element) -> None:
        pass

    def disconnect(self) -> None:
        pass


class Observer:
    """Visibility or size observer registered with the host."""
    supported = True

    def __init__(self, host: 'HostPage', kind: str, callback: Callable[[List[Element]], None]):
        self.host = host
        self.kind = kind
        self.callback = callback
        self.targets: List[Element] = []

    def observe(self, element: Element) -> None:
        if element not in self.targets:
            self.targets.append(element)

    def unobserve(self, element: Element) -> None:
        if element in self.targets:
            self.targets.remove(element)

    def disconnect(self) -> None:
        self.targets = []
        if self in self.host.observers:
            self.host.observers.remove(self)


class HostPage:
    """
    The page a widget is embedded in.

    Usage:
        host = HostPage(viewport_width=1280)
        host.create_element('div', id='storyslip-widget-abc')
        host.dispatch(host.document, Event('keydown', key='Escape'))
    """

    def __init__(self, supports_visibility: bool = True, supports_resize: bool = True,
                 viewport_width: int = 1280, viewport_height: int = 800, referrer: str = None):
        self.supports_visibility = supports_visibility
        self.supports_resize = supports_resize
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.referrer = referrer

        self.document = Element('document')
        self.window = Element('window')
        self.head = Element('head')
        self.body = Element('body')

        self.listeners: Dict[int, tuple] = {}
        self.observers: List[Observer] = []
        self._handles = itertools.count(1)

    # Elements

    def create_element(self, tag: str = 'div', id: str = None, parent: Element = None,
                       attributes: dict = None, classes=None) -> Element:
        element = Element(tag, id=id, attributes=attributes, classes=classes)
        (parent or self.body).append(element)
        return element

    def _walk(self, root: Element):
        for child in root.children:
            yield child
            yield from self._walk(child)

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        for root in (self.head, self.body):
            for element in self._walk(root):
                if element.id == element_id:
                    return element
        return None

    def find_by_attribute(self, attribute: str) -> List[Element]:
        return [e for e in self._walk(self.body) if attribute in e.attributes]

    # Styles

    def add_style(self, css: str, id: str = None) -> Element:
        style = Element('style', id=id)
        style.text = css
        self.head.append(style)
        return style

    @property
    def styles(self) -> List[Element]:
        return [e for e in self.head.children if e.tag == 'style']

    # Events

    def add_listener(self, target: Element, event_type: str, handler: Callable[[Event], None]) -> int:
        handle = next(self._handles)
        self.listeners[handle] = (target, event_type, handler)
        return handle

    def remove_listener(self, handle: int) -> None:
        self.listeners.pop(handle, None)

    def dispatch(self, target: Element, event: Event) -> Event:
        """Invoke every listener registered on target for the event type."""
        for registered, event_type, handler in list(self.listeners.values()):
            if registered is target and event_type == event.type:
                handler(event)
        return event

    # Capability probes

    def visibility_observer(self, callback: Callable[[List[Element]], None]):
        if not self.supports_visibility:
            return NullObserver()
        observer = Observer(self, 'visibility', callback)
        self.observers.append(observer)
        return observer

    def size_observer(self, callback: Callable[[List[Element]], None]):
        if not self.supports_resize:
            return NullObserver()
        observer = Observer(self, 'size', callback)
        self.observers.append(observer)
        return observer

    def scroll_into_view(self, element: Element) -> None:
        """Report element as visible to every visibility observer watching it."""
        for observer in list(self.observers):
            if observer.kind == 'visibility' and element in observer.targets:
                observer.callback([element])

    def resize(self, width: int, height: int = None) -> None:
        self.viewport_width = width
        if height is not None:
            self.viewport_height = height
        for observer in list(self.observers):
            if observer.kind == 'size' and observer.targets:
                observer.callback(list(observer.targets))
        self.dispatch(self.window, Event('resize'))
