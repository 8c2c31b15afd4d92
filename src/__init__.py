"""UK tax and payroll calculation engine."""
