from marshmallow import Schema, fields, EXCLUDE


class WebhookDataSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    user_id = fields.UUID(required=True)


class WebhookEventSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    event = fields.String(required=True)
    # only user.upgraded needs data, validated with WebhookDataSchema; other
    # events are acknowledged and ignored whatever they carry
    data = fields.Raw(load_default=None)
