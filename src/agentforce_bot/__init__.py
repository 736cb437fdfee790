"""Microsoft Teams bot relaying conversations to Salesforce Agentforce."""
