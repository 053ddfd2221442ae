"""Topic index built from ``<index-entry>`` elements."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field


def comparison_key(topic: str) -> str:
    """Lower-case `topic` and drop a plural ``es`` or ``s`` suffix."""
    key = topic.lower()
    if len(topic) > 2:
        if key.endswith("es"):
            key = key[:-2]
        elif key.endswith("s"):
            key = key[:-1]
    return key


@dataclass
class Topic:
    """An index topic and the places that refer to it.

    Attributes:
        name: Topic as first written.
        topic_id: Identifier unique within the run.
        locations: Rendered links to each reference.
    """

    name: str
    topic_id: str
    locations: list[str] = field(default_factory=list)

    @property
    def sort_key(self) -> tuple[bool, str]:
        # Topics starting with punctuation sort first
        return (self.name[:1].isalnum(), comparison_key(self.name))

    def new_target(self, subtopic: str | None) -> str:
        """Record another reference and return the anchor to place there."""
        number = len(self.locations) + 1
        anchor_id = f"hmlIndex-{self.topic_id}-{number}"
        text = subtopic.strip() if subtopic and subtopic.strip() else str(number)
        self.locations.append(f'<a class="hmlTopicLocation" href="#{anchor_id}">{text}</a>')
        return f'<a name="{anchor_id}"></a>'

    def render(self) -> str:
        return (
            f'<div class="hmlTopicGroup" id="{self.topic_id}">\n'
            f'\t<div class="hmlTopic">{self.name}</div>\n'
            '\t<div class="hmlTopicLocationGroup">\n'
            + ",\n".join(self.locations)
            + "\n\t</div>\n</div>"
        )


class Index:
    """Topics keyed so that case and plural suffixes do not split entries."""

    def __init__(self):
        self.topics: dict[str, Topic] = {}

    def __len__(self) -> int:
        return len(self.topics)

    def anchor_for(self, name: str, subtopic: str | None, new_id: Callable[[], str]) -> str:
        """Return a new anchor for `name`, creating the topic when it is new.

        Args:
            name: Topic name.
            subtopic: Text of the index link; the reference number when empty.
            new_id: Supplies the identifier of a new topic.
        """
        key = comparison_key(name)
        topic = self.topics.get(key)
        if topic is None:
            topic = self.topics[key] = Topic(name, new_id())
        return topic.new_target(subtopic)

    def render(self, title: str, arguments: str) -> str:
        entries = sorted(self.topics.values(), key=lambda topic: topic.sort_key)
        return (
            f"<div{arguments}>\n{title.strip()}\n"
            '<div class="hmlTopics">\n'
            + "".join(topic.render() + "\n" for topic in entries)
            + "</div></div>"
        )
