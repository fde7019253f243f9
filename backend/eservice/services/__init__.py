# Domain services: SMS gateway, OTP codes, file storage, locales, request workflow
