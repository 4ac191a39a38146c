"""Business services. Each service wraps one AsyncSession."""
