from celery.schedules import crontab


def parse_cron_expression(expression: str, **kwargs) -> crontab:
    """
    Build a Celery ``crontab`` from a five-field cron expression.

    Field order follows standard cron: minute, hour, day of month, month of
    year, day of week (0 or 7 = Sunday). Extra keyword arguments such as
    ``app`` or ``nowfun`` are passed through to ``crontab``.

    Raises:
        ValueError: If the expression does not have exactly five fields or a
            field is out of range.
    """
    fields = expression.split()
    if len(fields) != 5:
        raise ValueError(f"Invalid cron expression: {expression!r}")

    minute, hour, day_of_month, month_of_year, day_of_week = fields
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
        **kwargs,
    )
