"""ATM controller: card sessions, PIN lockout and single-operation transactions."""
