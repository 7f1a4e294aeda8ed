"""Domain layer: state machines, policies and ports for safeguarding verification."""
