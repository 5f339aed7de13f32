# Overview: Service layer; business rules and database work, no HTTP.
