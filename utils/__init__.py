# Utils package - logging setup and configuration checks shared by the app and the CLI
