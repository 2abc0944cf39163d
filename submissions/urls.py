"""
URL configuration for submissions app.
"""
from django.urls import path
from submissions.views import FormSubmissionWebhookView, IntegrationSettingsView

urlpatterns = [
    path('forms/', FormSubmissionWebhookView.as_view(), name='form-submission-webhook'),
    path('settings/', IntegrationSettingsView.as_view(), name='integration-settings'),
]
