"""sonardiff - SonarCloud dashboard screenshot analyzer."""
