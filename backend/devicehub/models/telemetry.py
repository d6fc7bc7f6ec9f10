from tortoise import fields, models

# Three parallel append-only series; rows are only inserted and read by recency.

class PressureReading(models.Model):
    id = fields.BigIntField(pk=True)
    device = fields.ForeignKeyField("models.Device", related_name="pressure_readings", on_delete=fields.CASCADE)
    pressure1 = fields.FloatField(null=True)
    pressure2 = fields.FloatField(null=True)
    recorded_at = fields.DatetimeField(index=True)

    class Meta:
        table = "pressure_readings"


class TemperatureReading(models.Model):
    id = fields.BigIntField(pk=True)
    device = fields.ForeignKeyField("models.Device", related_name="temperature_readings", on_delete=fields.CASCADE)
    temperature = fields.FloatField(null=True)
    recorded_at = fields.DatetimeField(index=True)

    class Meta:
        table = "temperature_readings"


class DistanceReading(models.Model):
    id = fields.BigIntField(pk=True)
    device = fields.ForeignKeyField("models.Device", related_name="distance_readings", on_delete=fields.CASCADE)
    distance = fields.FloatField(null=True)
    recorded_at = fields.DatetimeField(index=True)

    class Meta:
        table = "distance_readings"
