"""Post-completion actions: owner e-mails and webhooks."""
