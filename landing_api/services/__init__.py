"""
Landing contact services.

Services:
    - ContactPipeline: request pipeline for contact form submissions
    - SmtpEmailNotifier: operator notification and submitter confirmation
"""
