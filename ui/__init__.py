# ui - command-line front end
