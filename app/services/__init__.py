"""
WritersInn Services Package - task marketplace business logic.

Core Services:
- assignment_service: Cooldown policy, taking and submitting tasks, balance credits
- user_service: User registration, lookup and subscription flag
- task_service: Task creation and catalog listing
- auth_service: Magic-link login and verification
- export_service: Subscriber CSV export and purge
- notification_service: Mail gateways and the background delivery queue
- storage: Local storage for task attachments and submissions
"""
