"""
LayerGroup - organizational container for layers.

Groups do not own their layers:
- childLayerIds lists member layers, each layer mirrors it in parentGroupId
- deleting a group only clears the back-references
- a group emptied by layer removal is dropped
"""

import uuid
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from .layer import PropertyTrack
from .timeline import Number


class LayerGroup(BaseModel):
    """
    Layer group.

    Serialization format:
    {
        "id": "uuid",
        "name": "Group 1",
        "childLayerIds": ["uuid", ...],
        "visible": true,
        "solo": false,
        "locked": false,
        "collapsed": false,
        "propertyTracks": [...],      (optional)
        "staticProperties": {...}     (optional)
    }
    """

    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=False,
        extra='ignore',
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(default='Group 1')
    child_layer_ids: list[str] = Field(default_factory=list, alias='childLayerIds')

    # Flags
    visible: bool = Field(default=True)
    solo: bool = Field(default=False)
    locked: bool = Field(default=False)
    collapsed: bool = Field(default=False)

    property_tracks: Optional[list[PropertyTrack]] = Field(default=None, alias='propertyTracks')
    static_properties: Optional[dict[str, Number]] = Field(default=None, alias='staticProperties')

    def has_child(self, layer_id: str) -> bool:
        return layer_id in self.child_layer_ids

    def remove_child(self, layer_id: str) -> bool:
        """
        Drop a layer from the member list.

        Returns:
            True if the layer was a member
        """
        if layer_id not in self.child_layer_ids:
            return False
        self.child_layer_ids = [lid for lid in self.child_layer_ids if lid != layer_id]
        return True

    def to_api_dict(self) -> dict[str, Any]:
        """Convert to the v2 wire format."""
        return self.model_dump(by_alias=True, mode='json', exclude_none=True)
