"""Third-party service integrations."""

from .jira import JiraClient, TicketDetails, extract_jira_ticket, parse_ticket_reference

__all__ = ["JiraClient", "TicketDetails", "extract_jira_ticket", "parse_ticket_reference"]
