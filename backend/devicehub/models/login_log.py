from tortoise import fields, models

class LoginLog(models.Model):
    id = fields.IntField(pk=True)
    admin = fields.ForeignKeyField("models.User", related_name="login_logs", on_delete=fields.CASCADE)
    ip_address = fields.CharField(max_length=64, null=True)
    user_agent = fields.CharField(max_length=512, null=True)
    login_time = fields.DatetimeField(auto_now_add=True, index=True)

    class Meta:
        table = "login_logs"
