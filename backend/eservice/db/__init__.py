# Database seeding
