from .analytics_tasks import recalibrate_prediction_model_task, recalibrate_active_users_task
