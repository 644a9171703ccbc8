"""Field mapper adapter for transforming import rows into device entities.

This adapter implements IFieldMapper. Only descriptive columns are handled
here; credential columns are the business of the credentials builder and
are ignored, as are column types this mapper does not know.
"""

from uuid import UUID

from ..domain.entities import ColumnType, Device, DeviceMetadata, parse_bool
from ..domain.ports import IFieldMapper


class DeviceFieldMapper(IFieldMapper):
    """Maps import row fields onto Device entities.

    This class handles:
    - name, type and label columns
    - description and gateway flags in the metadata block
    - Boolean parsing ("true" in any case is True, anything else False)
    """

    def apply_fields(self, device: Device, fields: dict[ColumnType, str]) -> Device:
        """Populate ``device`` from the row fields.

        An existing metadata block is kept and merged into, never replaced.

        Args:
            device: Target device entity
            fields: Column type to raw string value

        Returns:
            The same device instance
        """
        if device.metadata is None:
            device.metadata = DeviceMetadata()

        for column, value in fields.items():
            if column == ColumnType.NAME:
                device.name = value
            elif column == ColumnType.TYPE:
                device.type = value
            elif column == ColumnType.LABEL:
                device.label = value
            elif column == ColumnType.DESCRIPTION:
                device.metadata.description = value
            elif column == ColumnType.IS_GATEWAY:
                device.metadata.gateway = parse_bool(value)

        return device

    def map_to_entity(self, tenant_id: UUID, fields: dict[ColumnType, str]) -> Device:
        """Build a new Device for the tenant from the row fields."""
        return self.apply_fields(Device(tenant_id=tenant_id), fields)
